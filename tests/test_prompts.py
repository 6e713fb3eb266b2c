import re

from ledger_assistant.ai_query import catalog
from ledger_assistant.ai_query.intent import ExecutionResult
from ledger_assistant.ai_query.prompts import (
    EXPLANATION_MAX_CHARS,
    build_response_prompt,
    build_system_prompt,
    clean_explanation,
)


def test_system_prompt_advertises_exactly_what_is_enforced(tenant):
    prompt = build_system_prompt(tenant)

    entities = re.search(r"entity is one of: (.+)", prompt).group(1)
    operations = re.search(r"operation is one of: (.+)", prompt).group(1)

    assert entities.split(", ") == list(catalog.allowed_entities())
    assert operations.split(", ") == list(catalog.allowed_operations())


def test_system_prompt_carries_tenant_context(tenant):
    prompt = build_system_prompt(tenant)

    assert '"Acme Trading"' in prompt
    assert "TODAY'S DATE: 2026-03-15" in prompt
    assert "CURRENCY: MYR" in prompt
    assert catalog.describe_schema() in prompt
    assert '"error": "out_of_scope"' in prompt
    assert '"error": "clarification_needed"' in prompt


def test_response_prompt_includes_data_and_question(tenant):
    result = ExecutionResult(
        success=True, data=[{"contactId": "C1", "contactName": "Alpha Sdn Bhd"}]
    )

    prompt = build_response_prompt("Top customers?", result, tenant, "top customers")

    assert 'USER\'S QUESTION: "Top customers?"' in prompt
    assert "WHAT THE QUERY DID: top customers" in prompt
    assert '"contactName": "Alpha Sdn Bhd"' in prompt
    assert '"MYR X,XXX.XX"' in prompt


def test_explanation_is_cleaned():
    assert clean_explanation("line\x00one\x1b[31m") == "line one [31m"
    assert clean_explanation(None) == ""

    long_text = clean_explanation("a" * 2000)
    assert len(long_text) == EXPLANATION_MAX_CHARS + 3
    assert long_text.endswith("...")
