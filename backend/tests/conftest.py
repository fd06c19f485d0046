"""Shared test fixtures for the DIY project assistant."""

import json
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base, Project, Material, ChecklistItem, Note, InspirationLink
from app.services.assistant import threads
from app.services.assistant.errors import ProviderError
from app.services.assistant.provider import ModelTurn
from app.services.sources.exa.search_client import SearchServiceError

PROJECT_ID = "kitchen-refresh"


class FakeProvider:
    """Scripted stand-in for AssistantProvider.

    `turns` are returned by respond() in order; the last one repeats once the
    script runs out. An Exception entry is raised instead of returned.
    `structured` maps a function name to its arguments (or an Exception).
    """

    def __init__(self, turns=None, structured: Optional[Dict[str, Any]] = None):
        self.turns: List[Any] = list(turns or [ModelTurn(text="")])
        self.structured_responses = dict(structured or {})
        self.respond_calls: List[List[Dict[str, Any]]] = []
        self.structured_calls: List[Dict[str, Any]] = []

    async def structured(self, *, tool, system_prompt, user_content, temperature=0.1):
        name = tool["function"]["name"]
        self.structured_calls.append(
            {"name": name, "system_prompt": system_prompt, "user_content": user_content}
        )
        value = self.structured_responses.get(name)
        if value is None:
            raise ProviderError(f"no scripted response for {name}")
        if isinstance(value, Exception):
            raise value
        return dict(value)

    async def respond(self, messages, tools, tool_choice="auto"):
        self.respond_calls.append([dict(m) for m in messages])
        turn = self.turns.pop(0) if len(self.turns) > 1 else self.turns[0]
        if isinstance(turn, Exception):
            raise turn
        return turn

    def structured_names(self) -> List[str]:
        return [call["name"] for call in self.structured_calls]


class FakeSearchClient:
    """Stand-in for ExaSearchClient returning canned normalized results.

    `by_query` maps an exact query to its own results (or an Exception).
    """

    def __init__(self, results=None, error: Optional[Exception] = None, by_query=None):
        self.results = list(results or [])
        self.error = error
        self.by_query = dict(by_query or {})
        self.calls: List[Dict[str, Any]] = []

    async def search(self, query, resource_type, num_results, content_type=None, context=None):
        self.calls.append(
            {
                "query": query,
                "resource_type": resource_type,
                "num_results": num_results,
                "content_type": content_type,
                "context": context,
            }
        )
        if self.error:
            raise self.error
        results = self.by_query.get(query, self.results)
        if isinstance(results, Exception):
            raise results
        return results[:num_results]


def make_link(index: int, video: bool = True) -> Dict[str, Any]:
    if video:
        url = f"https://www.youtube.com/watch?v=vid{index}"
    else:
        url = f"https://www.familyhandyman.com/project/cabinet-{index}/"
    return {
        "title": f"Painting kitchen cabinets part {index}",
        "url": url,
        "snippet": "Step by step cabinet painting tutorial.",
        "source": "YouTube" if video else "Family Handyman",
        "difficulty": "Intermediate",
        "tags": ["tutorial", "video", "painting", "kitchen"] if video else ["tutorial", "painting"],
        "is_video": video,
        "video_id": f"vid{index}" if video else None,
        "score": 0.8,
        "published_date": None,
    }


def unavailable_search() -> FakeSearchClient:
    return FakeSearchClient(error=SearchServiceError("exa down"))


@pytest.fixture(autouse=True)
def reset_thread_locks():
    """Locks are per event loop; each test gets its own loop."""
    threads._project_locks.clear()
    yield
    threads._project_locks.clear()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def project(session_maker):
    """Seed the "Kitchen Refresh" project with a completed interview."""
    async with session_maker() as session:
        session.add(
            Project(
                id=PROJECT_ID,
                title="Kitchen Refresh",
                goal="Paint the kitchen cabinets",
                description="Update dated oak cabinets with a light paint finish.",
                interview_context=json.dumps(
                    {
                        "answers": {
                            "experience": "Some painting experience",
                            "budget": "Around $400",
                        },
                        "focusAreas": ["cabinet painting", "hardware"],
                        "completedAt": "2025-01-15T10:00:00Z",
                    }
                ),
            )
        )
        session.add(Material(id="m1", project_id=PROJECT_ID, name="Cabinet paint", quantity="1 gallon"))
        session.add(Material(id="m2", project_id=PROJECT_ID, name="Primer", quantity="1 quart"))
        session.add(ChecklistItem(id="c1", project_id=PROJECT_ID, title="Remove doors", order=1))
        session.add(Note(id="n1", project_id=PROJECT_ID, content="Label every hinge."))
        session.add(InspirationLink(id="l1", project_id=PROJECT_ID, url="https://example.com/cabinets"))
        await session.commit()
    return PROJECT_ID


@pytest.fixture
async def db(session_maker, project):
    async with session_maker() as session:
        yield session
