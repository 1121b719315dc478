import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
import requests

from nltm.schemas.contacts import ContactAlias
from nltm.schemas.tasks import Priority
from nltm.services import nlp_parse
from nltm.services.nlp_parse import ExtractionFailed, build_prompt, extract_tasks

IST = ZoneInfo("Asia/Kolkata")
NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
CONTACTS = [ContactAlias(short_name="Ali", full_name="Ali Benali")]


def fixed(reply):
    calls = []

    def generate(prompt):
        calls.append(prompt)
        return reply

    generate.calls = calls
    return generate


def extract(text="Ali must send the invoice tomorrow, urgent", generate=None, **kw):
    return extract_tasks(text, "Sam Rivera", CONTACTS, tz=IST, now=NOW, generate=generate, **kw)


def test_prompt_carries_context():
    prompt = build_prompt("call mom", "Sam Rivera", CONTACTS, tz=IST, now=NOW)
    assert "2025-03-10 17:30:00 IST" in prompt
    assert "Asia/Kolkata" in prompt
    assert "The logged-in user is Sam Rivera" in prompt
    assert "Ali (Ali Benali)" in prompt
    assert "USER INPUT: call mom" in prompt
    for field in ("taskName", "assignee", "dueDate", "priority", "confidence"):
        assert field in prompt
    assert "noon" in prompt and "midnight" in prompt


def test_prompt_without_contacts():
    prompt = build_prompt("call mom", "Sam Rivera", [], tz=IST, now=NOW)
    assert "No contacts available" in prompt


def test_prompt_keeps_braces_in_user_text():
    prompt = build_prompt('note {"a": 1}', "Sam", [], tz=IST, now=NOW)
    assert 'note {"a": 1}' in prompt


def test_extract_returns_normalized_candidates():
    reply = json.dumps([
        {"taskName": "Send invoice", "assignee": "Ali", "dueDate": "2025-03-11T18:29:59Z",
         "priority": "P1", "confidence": 0.92},
        {"taskName": "", "priority": "whenever"},
    ])
    gen = fixed(reply)
    first, second = extract(generate=gen)
    assert len(gen.calls) == 1
    assert first.assignee == "Ali Benali"
    assert first.priority is Priority.P1
    assert first.confidence == 0.92
    assert second.task_name == "-"
    assert second.assignee == "Sam Rivera"
    assert second.confidence <= 0.3


def test_extract_accepts_fenced_reply():
    gen = fixed("```json\n" + json.dumps([{"taskName": "Book flights"}]) + "\n```")
    [c] = extract(generate=gen)
    assert c.task_name == "Book flights"


def test_extract_empty_array_is_not_an_error():
    assert extract(generate=fixed("[]")) == []


def test_extract_repairs_out_of_range_due_date():
    [c] = extract(generate=fixed('[{"taskName": "A", "dueDate": "0001-01-01T01:00:00", "confidence": 0.9}]'))
    assert c.task_name == "A"
    assert c.confidence == 0.4


def test_network_error_becomes_extraction_failed():
    boom = requests.ConnectionError("connection refused")

    def generate(prompt):
        raise boom

    with pytest.raises(ExtractionFailed) as info:
        extract(generate=generate)
    assert info.value.cause is boom
    assert info.value.__cause__ is boom
    assert "Failed to parse tasks" in str(info.value)


@pytest.mark.parametrize("reply", ["I could not find tasks.", '{"tasks": []}', '[1, 2]'])
def test_bad_reply_becomes_extraction_failed(reply):
    gen = fixed(reply)
    with pytest.raises(ExtractionFailed):
        extract(generate=gen)
    assert len(gen.calls) == 1


def test_blank_text_is_rejected_before_calling_out():
    gen = fixed("[]")
    with pytest.raises(ValueError):
        extract(text="   ", generate=gen)
    assert gen.calls == []


def test_default_generate_is_the_configured_provider(monkeypatch):
    gen = fixed("[]")
    monkeypatch.setattr(nlp_parse.provider, "generate", gen)
    assert extract() == []
    assert len(gen.calls) == 1
