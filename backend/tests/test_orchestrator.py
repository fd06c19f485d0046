"""Tests for the bounded tool-call loop."""

import json

import pytest

from app.crud.project import ProjectProfile
from app.schemas.assistant import IntentClassification
from app.services.assistant.catalog import ToolName
from app.services.assistant.errors import ProviderError
from app.services.assistant.orchestrator import run_tool_loop
from app.services.assistant.provider import ModelTurn, ToolCall
from app.services.assistant.search import ResourceSearchAdapter
from app.services.assistant.tools import ToolContext, ToolDispatcher

from conftest import FakeProvider, FakeSearchClient

CONTEXT = ToolContext(
    profile=ProjectProfile(id="p1", title="Kitchen Refresh"),
    classification=IntentClassification(),
)
MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "hi"}]


def notes_call(call_id="call_1"):
    return ToolCall(id=call_id, name=ToolName.SUMMARIZE_NOTES, arguments={"summary": "Label hinges"})


def make_dispatcher(provider):
    return ToolDispatcher(provider, ResourceSearchAdapter(provider, FakeSearchClient()))


@pytest.mark.asyncio
async def test_text_reply_without_tools():
    provider = FakeProvider([ModelTurn(text="Start by removing the doors.")])

    outcome = await run_tool_loop(provider, make_dispatcher(provider), MESSAGES, CONTEXT)

    assert outcome.text == "Start by removing the doors."
    assert outcome.invocations == []
    assert outcome.rounds == 0
    assert len(provider.respond_calls) == 1


@pytest.mark.asyncio
async def test_loop_stops_after_three_dispatch_rounds():
    provider = FakeProvider([ModelTurn(text="", tool_calls=[notes_call()])])

    outcome = await run_tool_loop(provider, make_dispatcher(provider), MESSAGES, CONTEXT)

    assert outcome.rounds == 3
    assert len(outcome.invocations) == 3
    assert len(provider.respond_calls) == 4
    assert outcome.text == ""


@pytest.mark.asyncio
async def test_tool_results_are_fed_back_in_order():
    provider = FakeProvider(
        [
            ModelTurn(
                tool_calls=[
                    notes_call("call_1"),
                    ToolCall(
                        id="call_2",
                        name=ToolName.GENERATE_CHECKLIST,
                        arguments={"tasks": [{"title": "Sand", "order": 1}]},
                    ),
                ]
            ),
            ModelTurn(text="I've summarized your notes and drafted tasks."),
        ]
    )

    outcome = await run_tool_loop(provider, make_dispatcher(provider), MESSAGES, CONTEXT)

    assert outcome.text == "I've summarized your notes and drafted tasks."
    assert [i.name for i in outcome.invocations] == ["summarize_notes", "generate_checklist"]
    second_call = provider.respond_calls[1]
    assert second_call[:2] == MESSAGES
    assistant, first_output, second_output = second_call[2:]
    assert [c["id"] for c in assistant["tool_calls"]] == ["call_1", "call_2"]
    assert first_output["role"] == "tool" and first_output["tool_call_id"] == "call_1"
    assert second_output["tool_call_id"] == "call_2"
    assert json.loads(second_output["content"])["tasks"][0]["title"] == "Sand"


@pytest.mark.asyncio
async def test_unknown_tools_are_ignored_and_not_counted():
    provider = FakeProvider([ModelTurn(text="", ignored_tools=["web_search_preview"])])

    outcome = await run_tool_loop(provider, make_dispatcher(provider), MESSAGES, CONTEXT)

    assert outcome.rounds == 0
    assert outcome.invocations == []
    assert len(provider.respond_calls) == 1


@pytest.mark.asyncio
async def test_initial_provider_failure_ends_loop():
    provider = FakeProvider([ProviderError("timeout")])

    outcome = await run_tool_loop(provider, make_dispatcher(provider), MESSAGES, CONTEXT)

    assert outcome.provider_failed is True
    assert outcome.text == ""
    assert outcome.invocations == []


@pytest.mark.asyncio
async def test_provider_failure_mid_loop_keeps_invocations():
    provider = FakeProvider(
        [ModelTurn(text="Let me summarize.", tool_calls=[notes_call()]), ProviderError("timeout")]
    )

    outcome = await run_tool_loop(provider, make_dispatcher(provider), MESSAGES, CONTEXT)

    assert outcome.provider_failed is True
    assert outcome.text == "Let me summarize."
    assert len(outcome.invocations) == 1
    assert outcome.invocations[0].result["success"] is True
