import logging
from typing import Annotated

import anthropic
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_assistant.ai_query.executor import TIMEOUT_PREFIX
from ledger_assistant.ai_query.intent import TenantContext
from ledger_assistant.ai_query.llm import LanguageModel, get_language_model
from ledger_assistant.ai_query.service import OutcomeKind, answer_question
from ledger_assistant.core import schemas
from ledger_assistant.core.database import get_db
from ledger_assistant.core.security import get_tenant_context

router = APIRouter(prefix="/chat", tags=["Chat"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
tenant_dep = Annotated[TenantContext, Depends(get_tenant_context)]
llm_dep = Annotated[LanguageModel, Depends(get_language_model)]

# User-facing text for each outcome. Rejections never echo what was rejected.
UNPARSEABLE_REPLY = (
    "I had trouble understanding that question. Could you rephrase it? "
    "For example: 'How much did I sell in January?' or 'Show my top 5 customers.'"
)
REJECTED_REPLY = (
    "I can't run that request. I can only read your accounting data, "
    "so try asking about sales, invoices, customers or expenses."
)
TIMEOUT_REPLY = (
    "That query is taking longer than expected. Try narrowing your question "
    "to a specific date range or customer."
)
EXECUTION_FAILED_REPLY = (
    "I had trouble fetching that data. Could you try rephrasing your question?"
)
RATE_LIMITED_REPLY = (
    "You've used your AI queries for now. You can still access all reports "
    "manually from the Reports page. Please try again in a few minutes."
)
FAILURE_REPLY = (
    "Something went wrong while processing your question. Please try again."
)


@router.post("", response_model=schemas.ChatResponse)
async def ask_question(
    payload: schemas.ChatRequest,
    tenant: tenant_dep,
    db: db_dep,
    llm: llm_dep,
):
    question = payload.question.strip()
    if not question:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Question is required")

    try:
        outcome = await answer_question(question, tenant, db, llm)
    except anthropic.RateLimitError:
        logging.warning(f"AI rate limit reached for tenant {tenant.tenant_id}")
        return {"response": RATE_LIMITED_REPLY}
    except anthropic.APIError as error:
        logging.error(f"AI request failed for tenant {tenant.tenant_id}: {error}")
        return {"response": FAILURE_REPLY}

    if outcome.kind == OutcomeKind.ANSWERED:
        return {"response": outcome.answer or FAILURE_REPLY}
    if outcome.kind == OutcomeKind.NON_ANSWER:
        # The model's own words, forwarded as-is
        return {"response": outcome.answer or REJECTED_REPLY}
    if outcome.kind == OutcomeKind.REJECTED:
        return {"response": REJECTED_REPLY}
    if outcome.kind == OutcomeKind.EXECUTION_FAILED:
        if outcome.error and outcome.error.startswith(TIMEOUT_PREFIX):
            return {"response": TIMEOUT_REPLY}
        return {"response": EXECUTION_FAILED_REPLY}
    return {"response": UNPARSEABLE_REPLY}
