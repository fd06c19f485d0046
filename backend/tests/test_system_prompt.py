"""Tests for system prompt assembly."""

import re
from types import SimpleNamespace

from app.crud.project import InterviewContext, ProjectProfile
from app.schemas.assistant import IntentClassification
from app.services.assistant.catalog import ToolName
from app.utils.system_prompt import build_messages, build_system_prompt

INTERVIEWED = ProjectProfile(
    id="p1",
    title="Kitchen Refresh",
    goal="Paint the kitchen cabinets",
    materials=["Cabinet paint", "Primer"],
    checklist_count=3,
    notes_count=1,
    inspiration_count=2,
    interview=InterviewContext(
        answers={"experience": "Some painting experience", "budget": "Around $400"},
        focus_areas=["cabinet painting", "hardware"],
        completed_at="2025-01-15T10:00:00Z",
    ),
)

BARE = ProjectProfile(id="p2", title="Garden Bed")

GUIDANCE = IntentClassification(intent="general_guidance", reasoning="Needs advice")


def test_project_facts_and_interview_are_included():
    prompt = build_system_prompt(INTERVIEWED, GUIDANCE, "how do I start?")

    assert "Project: Kitchen Refresh" in prompt
    assert "Goal: Paint the kitchen cabinets" in prompt
    assert "Description: Not specified" in prompt
    assert "- 2 materials/tools" in prompt
    assert "- 3 checklist items" in prompt
    assert "- Some painting experience" in prompt
    assert "- Around $400" in prompt
    assert "Focus Areas: cabinet painting, hardware" in prompt
    assert "NOTE: This project doesn't have detailed context" not in prompt
    assert "User Intent: general_guidance" in prompt


def test_missing_interview_adds_note():
    prompt = build_system_prompt(BARE, GUIDANCE, "hi")

    assert "NOTE: This project doesn't have detailed context" in prompt
    assert "Additional Project Context" not in prompt


def test_incomplete_interview_adds_note():
    profile = ProjectProfile(
        id="p3",
        title="Deck",
        interview=InterviewContext(answers={"q": "half done"}),
    )

    prompt = build_system_prompt(profile, GUIDANCE, "hi")

    assert "NOTE: This project doesn't have detailed context" in prompt
    assert "half done" not in prompt


def test_search_directive_requires_search_tool():
    classification = IntentClassification(
        intent="search_resources",
        resource_type="tutorial",
        content_type="video",
        needs_web_search=True,
        specific_query="painting kitchen cabinets",
    )

    prompt = build_system_prompt(INTERVIEWED, classification, "find me videos")

    assert "requesting tutorial resources (video content)" in prompt
    assert 'Search Query: "painting kitchen cabinets"' in prompt
    assert "You MUST use the search_web_resources function" in prompt
    assert "DO NOT include any URLs or links" in prompt


def test_search_directive_falls_back_to_message():
    classification = IntentClassification(intent="search_resources", needs_web_search=True)

    prompt = build_system_prompt(INTERVIEWED, classification, "show me ideas")

    assert 'Search Query: "show me ideas"' in prompt
    assert "(mixed content)" in prompt


def test_search_intent_without_search_has_no_directive():
    classification = IntentClassification(intent="search_resources", needs_web_search=False)

    prompt = build_system_prompt(INTERVIEWED, classification, "show me ideas")

    assert "You MUST use" not in prompt


def test_off_topic_redirects_to_project():
    classification = IntentClassification(intent="off_topic")

    prompt = build_system_prompt(INTERVIEWED, classification, "who won the game?")

    assert 'Redirects to their DIY project: "Kitchen Refresh"' in prompt


def test_webpage_directive():
    classification = IntentClassification(intent="summarize_webpage")

    prompt = build_system_prompt(INTERVIEWED, classification, "summarize https://example.com")

    assert "Use the summarize_webpage function" in prompt


def test_catalog_lists_exactly_five_functions():
    prompt = build_system_prompt(INTERVIEWED, GUIDANCE, "hi")

    section = prompt.split("Available functions:")[1].split("CRITICAL RULES:")[0]
    entries = re.findall(r"^\d\. (\w+) - ", section, flags=re.MULTILINE)
    assert sorted(entries) == sorted(name.value for name in ToolName)


def test_prompt_is_deterministic():
    assert build_system_prompt(INTERVIEWED, GUIDANCE, "hi") == build_system_prompt(INTERVIEWED, GUIDANCE, "hi")


def test_messages_are_system_history_then_user():
    history = [
        SimpleNamespace(role="user", content="first"),
        SimpleNamespace(role="assistant", content="second"),
    ]

    messages = build_messages("SYSTEM", history, "third")

    assert messages == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "second"},
        {"role": "user", "content": "third"},
    ]
