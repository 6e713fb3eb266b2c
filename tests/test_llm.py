from types import SimpleNamespace

import pytest

from ledger_assistant.ai_query.llm import LanguageModel, parse_raw_intent


def test_parse_bare_json():
    raw = parse_raw_intent(
        '{"entity": "invoice", "operation": "count", "args": {}, "explanation": "how many"}'
    )
    assert raw.entity == "invoice"
    assert raw.operation == "count"
    assert raw.explanation == "how many"


def test_parse_fenced_json_with_chatter():
    text = 'Sure!\n```json\n{"entity": "contact", "operation": "findMany"}\n```\nDone.'
    raw = parse_raw_intent(text)
    assert raw.entity == "contact"


def test_parse_sentinel():
    raw = parse_raw_intent('{"error": "out_of_scope", "message": "Ask about invoices."}')
    assert raw.error == "out_of_scope"
    assert raw.message == "Ask about invoices."


@pytest.mark.parametrize("text", ["", "no json here", "{not valid json}", "[1, 2]"])
def test_parse_failures_return_none(text):
    assert parse_raw_intent(text) is None


class FakeMessages:
    def __init__(self):
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Hello "),
                SimpleNamespace(type="tool_use", text="ignored"),
                SimpleNamespace(type="text", text="there"),
            ]
        )


@pytest.mark.asyncio
async def test_complete_sends_system_prompt_and_joins_text():
    messages = FakeMessages()
    model = LanguageModel(client=SimpleNamespace(messages=messages))

    reply = await model.complete("question", system="schema")

    assert reply == "Hello there"
    assert messages.kwargs["system"] == "schema"
    assert messages.kwargs["messages"] == [{"role": "user", "content": "question"}]


@pytest.mark.asyncio
async def test_complete_without_system_prompt():
    messages = FakeMessages()
    model = LanguageModel(client=SimpleNamespace(messages=messages))

    await model.complete("format this")

    assert "system" not in messages.kwargs
