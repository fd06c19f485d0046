"""Tests for intent classification."""

import pytest

from app.crud.project import ProjectProfile
from app.services.assistant.errors import ProviderResponseError
from app.services.assistant.intent import classify_intent

from conftest import FakeProvider

PROFILE = ProjectProfile(
    id="p1",
    title="Kitchen Refresh",
    goal="Paint the kitchen cabinets",
    materials=["Cabinet paint"],
    checklist_count=2,
)


@pytest.mark.asyncio
async def test_search_intent_is_parsed():
    provider = FakeProvider(
        structured={
            "classify_intent": {
                "intent": "search_resources",
                "resource_type": "tutorial",
                "content_type": "video",
                "needs_web_search": True,
                "specific_query": "painting kitchen cabinets",
                "confidence": 0.92,
                "reasoning": "User asks for videos",
            }
        }
    )

    result = await classify_intent(provider, "find me video tutorials", PROFILE, [])

    assert result.intent == "search_resources"
    assert result.resource_type == "tutorial"
    assert result.content_type == "video"
    assert result.needs_web_search is True
    assert result.specific_query == "painting kitchen cabinets"
    assert result.confidence == pytest.approx(0.92)


@pytest.mark.asyncio
async def test_confidence_is_clamped():
    provider = FakeProvider(
        structured={
            "classify_intent": {
                "intent": "off_topic",
                "needs_web_search": False,
                "confidence": 1.7,
                "reasoning": "Asking about football",
            }
        }
    )

    result = await classify_intent(provider, "who won the game?", PROFILE, [])

    assert result.intent == "off_topic"
    assert result.confidence == 1.0


@pytest.mark.asyncio
async def test_provider_failure_degrades_to_general_guidance():
    provider = FakeProvider(structured={"classify_intent": ProviderResponseError("bad payload")})

    result = await classify_intent(provider, "help", PROFILE, [])

    assert result.intent == "general_guidance"
    assert result.needs_web_search is False
    assert result.confidence == pytest.approx(0.3)


@pytest.mark.asyncio
async def test_unknown_intent_degrades_to_general_guidance():
    provider = FakeProvider(
        structured={"classify_intent": {"intent": "shopping", "needs_web_search": True, "confidence": 0.9}}
    )

    result = await classify_intent(provider, "buy paint", PROFILE, [])

    assert result.intent == "general_guidance"
    assert result.needs_web_search is False


@pytest.mark.asyncio
async def test_prompt_carries_profile_summary_and_last_three_turns():
    provider = FakeProvider(
        structured={"classify_intent": {"intent": "general_guidance", "needs_web_search": False, "confidence": 0.6}}
    )
    turns = [{"role": "user", "content": f"message number {i}"} for i in range(5)]

    await classify_intent(provider, "what next?", PROFILE, turns)

    call = provider.structured_calls[0]
    assert call["user_content"] == "what next?"
    prompt = call["system_prompt"]
    assert "Kitchen Refresh" in prompt
    assert '"checklistItems": 2' in prompt
    assert "message number 1" not in prompt
    assert "message number 2" in prompt
    assert "message number 4" in prompt
