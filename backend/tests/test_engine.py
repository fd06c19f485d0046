"""End-to-end tests for ProjectAssistant.send_message."""

import json
from datetime import timedelta

import pytest

from app.crud.conversation import chat_message_crud, thread_crud
from app.models.base import utcnow
from app.services.assistant.catalog import ToolName
from app.services.assistant.engine import ProjectAssistant
from app.services.assistant.errors import ProjectNotFoundError, ProviderError, ThreadNotFoundError
from app.services.assistant.fallback import PROVIDER_DOWN_REPLY
from app.services.assistant.provider import ModelTurn, ToolCall

from conftest import PROJECT_ID, FakeProvider, FakeSearchClient, make_link

VIDEO_MESSAGE = "find me video tutorials for painting kitchen cabinets"

VIDEO_INTENT = {
    "intent": "search_resources",
    "resource_type": "tutorial",
    "content_type": "video",
    "needs_web_search": True,
    "specific_query": "painting kitchen cabinets",
    "confidence": 0.95,
    "reasoning": "User wants video tutorials",
}

GUIDANCE_INTENT = {
    "intent": "general_guidance",
    "needs_web_search": False,
    "confidence": 0.8,
    "reasoning": "Advice request",
}

OPTIMIZED = {
    "optimized_query": "painting oak kitchen cabinets video tutorial",
    "search_terms": ["kitchen", "cabinets"],
    "reasoning": "Adds project terms",
}


@pytest.mark.asyncio
async def test_video_tutorial_request_end_to_end(db):
    provider = FakeProvider(
        [
            ModelTurn(
                tool_calls=[
                    ToolCall(
                        id="call_1",
                        name=ToolName.SEARCH_WEB_RESOURCES,
                        arguments={
                            "query": "painting kitchen cabinets",
                            "resource_type": "tutorial",
                            "content_type": "video",
                            "num_results": 20,
                        },
                    )
                ]
            ),
            ModelTurn(text="I found some great video walkthroughs for your cabinets!"),
        ],
        structured={"classify_intent": VIDEO_INTENT, "optimize_search_query": OPTIMIZED},
    )
    search_client = FakeSearchClient([make_link(i) for i in range(8)])
    assistant = ProjectAssistant(provider, search_client)

    result = await assistant.send_message(db, PROJECT_ID, VIDEO_MESSAGE)

    thread = await thread_crud.get_for_project(db, PROJECT_ID, result.thread_id)
    assert thread.title == "find me video tutorials for painting kitchen ca..."
    assert result.message == "I found some great video walkthroughs for your cabinets!"
    assert result.response_type == "search_results"
    links = result.function_call.result["links"]
    assert 0 < len(links) <= 5
    assert all(link["is_video"] for link in links)
    assert result.metadata.has_search_results is True
    assert result.metadata.search_results_count == len(links)
    assert result.metadata.content_type == "video"
    assert result.metadata.resource_type == "tutorial"
    assert result.metadata.query_optimization["optimized_query"] == OPTIMIZED["optimized_query"]
    assert search_client.calls[0]["query"] == OPTIMIZED["optimized_query"]

    system_prompt = provider.respond_calls[0][0]["content"]
    assert "You MUST use the search_web_resources function" in system_prompt

    turns = await chat_message_crud.list_recent(db, result.thread_id, 20)
    assert [(t.role, t.content) for t in turns] == [
        ("user", VIDEO_MESSAGE),
        ("assistant", result.message),
    ]
    stored = json.loads(turns[1].function_call)
    assert stored["name"] == "search_web_resources"
    assert turns[0].function_call is None


@pytest.mark.asyncio
async def test_plain_conversation(db):
    provider = FakeProvider(
        [ModelTurn(text="Remove the doors first and label the hinges.")],
        structured={"classify_intent": GUIDANCE_INTENT},
    )
    search_client = FakeSearchClient([make_link(1)])
    assistant = ProjectAssistant(provider, search_client)

    result = await assistant.send_message(db, PROJECT_ID, "Where should I start?")

    assert result.response_type == "conversation"
    assert result.function_call is None
    assert result.function_calls == []
    assert result.metadata.has_search_results is False
    assert result.metadata.search_results_count == 0
    assert search_client.calls == []


@pytest.mark.asyncio
async def test_first_invocation_is_persisted_and_all_are_returned(db):
    provider = FakeProvider(
        [
            ModelTurn(
                tool_calls=[
                    ToolCall("call_1", ToolName.GENERATE_MATERIALS, {"materials": [{"name": "Primer", "quantity": "1"}]}),
                    ToolCall("call_2", ToolName.GENERATE_CHECKLIST, {"tasks": [{"title": "Prime", "order": 1}]}),
                ]
            ),
            ModelTurn(text="Here is a plan."),
        ],
        structured={"classify_intent": {**GUIDANCE_INTENT, "intent": "project_planning"}},
    )
    assistant = ProjectAssistant(provider, FakeSearchClient())

    result = await assistant.send_message(db, PROJECT_ID, "Plan this for me")

    assert result.response_type == "function_call"
    assert [c.name for c in result.function_calls] == ["generate_materials", "generate_checklist"]
    assert result.function_call.name == "generate_materials"
    assert result.metadata.has_search_results is False

    turns = await chat_message_crud.list_recent(db, result.thread_id, 20)
    assert json.loads(turns[-1].function_call)["name"] == "generate_materials"


@pytest.mark.asyncio
async def test_empty_reply_falls_back_to_search(db):
    provider = FakeProvider(
        [ModelTurn(text="", ignored_tools=["web_search_preview"])],
        structured={"classify_intent": VIDEO_INTENT},
    )
    search_client = FakeSearchClient([make_link(1), make_link(2), make_link(3)])
    assistant = ProjectAssistant(provider, search_client)

    result = await assistant.send_message(db, PROJECT_ID, VIDEO_MESSAGE)

    assert "step-by-step tutorials and guides" in result.message
    assert result.response_type == "search_results"
    assert result.metadata.has_search_results is True
    assert result.metadata.search_results_count == 3
    assert search_client.calls[0]["query"] == "painting kitchen cabinets"


@pytest.mark.asyncio
async def test_provider_outage_still_answers(db):
    provider = FakeProvider([ProviderError("connection refused")])
    assistant = ProjectAssistant(provider, FakeSearchClient([]))

    result = await assistant.send_message(db, PROJECT_ID, "Help me")

    assert result.message == PROVIDER_DOWN_REPLY
    assert result.response_type == "conversation"
    turns = await chat_message_crud.list_recent(db, result.thread_id, 20)
    assert [t.role for t in turns] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_follow_up_reuses_thread_and_bumps_recency(db):
    provider = FakeProvider([ModelTurn(text="Sure.")], structured={"classify_intent": GUIDANCE_INTENT})
    assistant = ProjectAssistant(provider, FakeSearchClient())

    first = await assistant.send_message(db, PROJECT_ID, "First question")
    thread = await thread_crud.get_for_project(db, PROJECT_ID, first.thread_id)
    thread.last_message_at = utcnow() - timedelta(hours=3)
    await db.commit()

    second = await assistant.send_message(db, PROJECT_ID, "Second question")

    assert second.thread_id == first.thread_id
    refreshed = await thread_crud.get_for_project(db, PROJECT_ID, first.thread_id)
    await db.refresh(refreshed)
    assert refreshed.last_message_at > utcnow() - timedelta(minutes=5)
    assert await thread_crud.get_message_count(db, first.thread_id) == 4
    history = provider.respond_calls[-1]
    assert [m["content"] for m in history[1:]] == ["First question", "Sure.", "Second question"]


@pytest.mark.asyncio
async def test_prompt_window_holds_20_most_recent_turns(db):
    thread = await thread_crud.create(db, PROJECT_ID, "long")
    base = utcnow() - timedelta(hours=1)
    for i in range(30):
        role = "user" if i % 2 == 0 else "assistant"
        await chat_message_crud.create(
            db, PROJECT_ID, thread.id, role, f"turn {i}", created_at=base + timedelta(seconds=i)
        )
    provider = FakeProvider([ModelTurn(text="ok")], structured={"classify_intent": GUIDANCE_INTENT})
    assistant = ProjectAssistant(provider, FakeSearchClient())

    await assistant.send_message(db, PROJECT_ID, "next", thread_id=thread.id)

    messages = provider.respond_calls[0]
    assert len(messages) == 22
    assert [m["content"] for m in messages[1:-1]] == [f"turn {i}" for i in range(10, 30)]
    assert messages[-1] == {"role": "user", "content": "next"}


@pytest.mark.asyncio
async def test_unknown_project_raises(db):
    assistant = ProjectAssistant(FakeProvider(), FakeSearchClient())

    with pytest.raises(ProjectNotFoundError):
        await assistant.send_message(db, "missing-project", "hi")


@pytest.mark.asyncio
async def test_unknown_thread_raises_without_writing(db):
    assistant = ProjectAssistant(FakeProvider(), FakeSearchClient())

    with pytest.raises(ThreadNotFoundError):
        await assistant.send_message(db, PROJECT_ID, "hi", thread_id="missing-thread")

    assert await chat_message_crud.list_by_project(db, PROJECT_ID, limit=50) == []
