"""Orchestration of one chat question.

Flow:
1. Ask the model for a query intent (schema-aware prompt)
2. Parse the intent
3. Validate it against the catalog and the caller's tenant
4. Execute the read under a deadline
5. Ask the model to phrase the answer

The service returns a structured AskOutcome. Picking the text the user sees
for a failure is the route's job.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_assistant.ai_query.executor import QueryExecutor
from ledger_assistant.ai_query.intent import Rejection, TenantContext
from ledger_assistant.ai_query.llm import LanguageModel, parse_raw_intent
from ledger_assistant.ai_query.prompts import build_response_prompt, build_system_prompt
from ledger_assistant.ai_query.validator import validate
from ledger_assistant.core.data_access import DataAccess

logger = logging.getLogger(__name__)


class OutcomeKind(str, Enum):
    ANSWERED = "answered"
    NON_ANSWER = "nonAnswer"
    REJECTED = "rejected"
    EXECUTION_FAILED = "executionFailed"
    UNPARSEABLE = "unparseable"


@dataclass(frozen=True)
class AskOutcome:
    kind: OutcomeKind
    answer: Optional[str] = None  # model-written text (answered / non-answer)
    rejection: Optional[Rejection] = None
    error: Optional[str] = None


async def answer_question(
    question: str,
    tenant: TenantContext,
    db: AsyncSession,
    llm: LanguageModel,
    timeout_ms: Optional[int] = None,
) -> AskOutcome:
    reply = await llm.complete(question, system=build_system_prompt(tenant))

    raw = parse_raw_intent(reply)
    if raw is None:
        return AskOutcome(kind=OutcomeKind.UNPARSEABLE)

    checked = validate(raw, tenant)
    if isinstance(checked, Rejection):
        if checked.is_sentinel:
            return AskOutcome(
                kind=OutcomeKind.NON_ANSWER, answer=checked.message, rejection=checked
            )
        logger.warning(
            "tenant=%s intent rejected (%s): %s",
            tenant.tenant_id,
            checked.kind.value,
            checked.message,
        )
        return AskOutcome(kind=OutcomeKind.REJECTED, rejection=checked)

    result = await QueryExecutor(DataAccess(db), timeout_ms=timeout_ms).execute(checked)
    if not result.success:
        return AskOutcome(kind=OutcomeKind.EXECUTION_FAILED, error=result.error)

    answer = await llm.complete(
        build_response_prompt(question, result, tenant, checked.explanation)
    )
    return AskOutcome(kind=OutcomeKind.ANSWERED, answer=answer)
