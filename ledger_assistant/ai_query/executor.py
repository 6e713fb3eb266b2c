import asyncio
import logging
from typing import Any, Dict, List, Optional

from ledger_assistant.ai_query.catalog import TENANT_FIELD, EntityName, OperationName
from ledger_assistant.ai_query.intent import ExecutionResult
from ledger_assistant.ai_query.validator import ValidatedIntent
from ledger_assistant.core.config import settings
from ledger_assistant.core.data_access import OPERATIONS, DataAccess

logger = logging.getLogger(__name__)

CONTACT_KEY = "contactId"
CONTACT_NAME_KEY = "contactName"
UNKNOWN_CONTACT = "Unknown"

TIMEOUT_PREFIX = "Query timeout"


def _as_records(operation: OperationName, raw: Any) -> List[Dict[str, Any]]:
    if operation == OperationName.COUNT:
        return [{"count": raw}]
    if raw is None:
        return []
    if isinstance(raw, dict):
        return [raw]
    return list(raw)


def _log_abandoned(task: asyncio.Task):
    # Collect the outcome of a query we stopped waiting for
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("abandoned query finished with error: %s", error)


class QueryExecutor:
    """
    Runs a ValidatedIntent against the data-access layer under a deadline.
    Never raises: every failure comes back as ExecutionResult(success=False).
    """

    def __init__(self, access: DataAccess, timeout_ms: Optional[int] = None):
        self.access = access
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.AI_QUERY_TIMEOUT_MS

    async def execute(self, intent: ValidatedIntent) -> ExecutionResult:
        task = asyncio.ensure_future(self._run(intent))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            # Stop waiting; the read may still finish on the server side
            task.cancel()
            task.add_done_callback(_log_abandoned)
            logger.warning(
                "query timed out after %sms: entity=%s operation=%s",
                self.timeout_ms,
                intent.entity.value,
                intent.operation.value,
            )
            return ExecutionResult(
                success=False,
                error=f"{TIMEOUT_PREFIX}: exceeded {self.timeout_ms} ms",
            )

        try:
            data = task.result()
        except Exception as error:
            logger.error(
                "query failed: entity=%s operation=%s error=%s",
                intent.entity.value,
                intent.operation.value,
                error,
            )
            return ExecutionResult(success=False, error=f"Query failed: {error}")

        return ExecutionResult(success=True, data=data)

    async def _run(self, intent: ValidatedIntent) -> List[Dict[str, Any]]:
        # args is a plain dict, so check the scope again right before the read
        if intent.args.get("where", {}).get(TENANT_FIELD) != intent.tenant_id:
            raise PermissionError("intent is not scoped to its tenant")
        handler = OPERATIONS[intent.operation]
        raw = await handler(self.access.delegate(intent.entity), intent.args)
        records = _as_records(intent.operation, raw)

        if intent.operation == OperationName.GROUP_BY:
            await self._attach_contact_names(records, intent.tenant_id)
        return records

    async def _attach_contact_names(self, records: List[Dict[str, Any]], tenant_id: str):
        if not any(CONTACT_KEY in r for r in records):
            return
        ids = sorted({r[CONTACT_KEY] for r in records if r.get(CONTACT_KEY)})

        names: Dict[str, str] = {}
        if ids:
            contacts = await self.access.delegate(EntityName.CONTACT).find_many(
                {
                    "where": {"id": {"in": ids}, TENANT_FIELD: tenant_id},
                    "select": {"id": True, "name": True},
                    "take": len(ids),
                }
            )
            names = {c["id"]: c["name"] for c in contacts}

        for record in records:
            if CONTACT_KEY in record:
                record[CONTACT_NAME_KEY] = names.get(record[CONTACT_KEY], UNKNOWN_CONTACT)
