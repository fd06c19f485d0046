"""初始化数据库并添加示例项目"""
import asyncio
import json
import os
import sys
from pathlib import Path

# 添加项目根目录到Python路径
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from app.database import init_db, async_session_maker
from app.models import Project, Material, ChecklistItem, Note, InspirationLink
from app.models.base import utcnow

DEMO_PROJECT_ID = "kitchen-refresh"


async def init_sample_data():
    """初始化示例数据"""

    os.makedirs("data", exist_ok=True)
    await init_db()

    async with async_session_maker() as session:
        # 强制清空所有表（用于重新初始化）
        for table in (
            "ai_chat_messages",
            "ai_chat_threads",
            "inspiration_links",
            "notes",
            "checklist_items",
            "materials",
            "projects",
        ):
            await session.execute(text(f"DELETE FROM {table}"))
        await session.commit()

        print("📝 开始添加示例数据...")

        # 1. 创建项目
        project = Project(
            id=DEMO_PROJECT_ID,
            title="Kitchen Refresh",
            goal="Paint the kitchen cabinets and swap the hardware",
            description="Update dated oak cabinets with a light paint finish on a weekend budget.",
            interview_context=json.dumps(
                {
                    "answers": {
                        "experience": "Some painting experience, never painted cabinets",
                        "budget": "Around $400",
                        "timeline": "Two weekends",
                    },
                    "focusAreas": ["cabinet painting", "hardware"],
                    "completedAt": utcnow().isoformat(),
                },
                ensure_ascii=False,
            ),
        )
        session.add(project)

        # 2. 材料
        materials_data = [
            ("Cabinet paint", "1 gallon", 65.0, "Materials"),
            ("Bonding primer", "1 quart", 22.0, "Materials"),
            ("Foam roller set", "1 pack", 12.5, "Tools"),
            ("Sanding sponge", "4", 9.0, "Tools"),
        ]
        for index, (name, quantity, price, category) in enumerate(materials_data, start=1):
            session.add(
                Material(
                    id=f"{DEMO_PROJECT_ID}-material-{index}",
                    project_id=DEMO_PROJECT_ID,
                    name=name,
                    quantity=quantity,
                    estimated_price=price,
                    category=category,
                )
            )

        # 3. 清单
        checklist_data = [
            "Remove doors and hardware",
            "Degrease and sand all surfaces",
            "Prime doors and frames",
            "Paint two coats",
            "Reinstall doors with new hardware",
        ]
        for order, title in enumerate(checklist_data, start=1):
            session.add(
                ChecklistItem(
                    id=f"{DEMO_PROJECT_ID}-task-{order}",
                    project_id=DEMO_PROJECT_ID,
                    title=title,
                    order=order,
                )
            )

        # 4. 笔记和灵感链接
        session.add(
            Note(
                id=f"{DEMO_PROJECT_ID}-note-1",
                project_id=DEMO_PROJECT_ID,
                content="Label each door and hinge before removal so they go back in the same spot.",
            )
        )
        session.add(
            InspirationLink(
                id=f"{DEMO_PROJECT_ID}-link-1",
                project_id=DEMO_PROJECT_ID,
                url="https://www.thisoldhouse.com/kitchens/21015226/how-to-paint-kitchen-cabinets",
                title="How to Paint Kitchen Cabinets",
            )
        )
        await session.commit()

        print("✅ 示例数据添加成功！")
        print(f"   - 创建了 1 个项目：{project.title} ({DEMO_PROJECT_ID})")
        print(f"   - 创建了 {len(materials_data)} 个材料、{len(checklist_data)} 个清单项")


if __name__ == "__main__":
    print("=" * 60)
    print("🚀 DIY项目助手 - 数据库初始化")
    print("=" * 60)

    asyncio.run(init_sample_data())

    print("\n✨ 初始化完成！现在可以启动服务了。")
    print("   运行命令: uvicorn app.main:app --reload --port 8000")
    print("=" * 60)
