"""
Intent validator.

Turns a RawIntent proposed by the language model into a ValidatedIntent
scoped to the caller's tenant, or a Rejection. Gates run in order and the
first failure rejects the whole intent:

1. sentinel (out of scope / needs clarification)
2. entity allowlist
3. operation allowlist
4. args shape
5. forbidden-content scan
6. tenant scope (where.companyId is always overwritten)
7. page-size bound for list and group operations
"""

import copy
import json
import logging
import re
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Dict, Union

from ledger_assistant.ai_query import catalog
from ledger_assistant.ai_query.catalog import EntityName, OperationName
from ledger_assistant.ai_query.intent import (
    RawIntent,
    Rejection,
    RejectionKind,
    TenantContext,
)
from ledger_assistant.core.config import settings

logger = logging.getLogger(__name__)

# Whole-word match on lowercase canonical JSON. "createdAt" must stay legal.
FORBIDDEN_TOKENS = (
    "create",
    "createmany",
    "update",
    "updatemany",
    "delete",
    "deletemany",
    "upsert",
    "drop",
    "truncate",
    "$executeraw",
    "$executerawunsafe",
    "$queryraw",
    "$queryrawunsafe",
    "executeraw",
    "executerawunsafe",
    "queryraw",
    "queryrawunsafe",
)

_FORBIDDEN_RE = re.compile(
    r"(?<![a-z0-9_$])("
    + "|".join(re.escape(t) for t in sorted(FORBIDDEN_TOKENS, key=len, reverse=True))
    + r")(?![a-z0-9_])"
)

_SENTINELS = {
    "out_of_scope": RejectionKind.OUT_OF_SCOPE,
    "clarification_needed": RejectionKind.CLARIFICATION_NEEDED,
}

# Set only while validate() is building a ValidatedIntent. Any other path into
# __init__ (direct call, dataclasses.replace, copy.replace) sees it unset.
_issuing: ContextVar[bool] = ContextVar("issuing_validated_intent", default=False)


@dataclass(frozen=True)
class ValidatedIntent:
    entity: EntityName
    operation: OperationName
    args: Dict[str, Any]
    explanation: str
    tenant_id: str

    def __post_init__(self):
        if not _issuing.get():
            raise TypeError("ValidatedIntent can only be created by validate()")
        where = self.args.get("where") if isinstance(self.args, dict) else None
        if not isinstance(where, dict) or where.get(catalog.TENANT_FIELD) != self.tenant_id:
            raise TypeError("ValidatedIntent must be scoped to its own tenant")


def _issue(**fields) -> ValidatedIntent:
    token = _issuing.set(True)
    try:
        return ValidatedIntent(**fields)
    finally:
        _issuing.reset(token)


ValidationResult = Union[ValidatedIntent, Rejection]


def _sentinel(raw: RawIntent):
    """Return the sentinel kind if the model declined to build a query."""
    if isinstance(raw.error, str):
        return _SENTINELS.get(raw.error.strip().lower())
    # {"error": true, "message": ...} is the older shape of out_of_scope
    if raw.error is True:
        return RejectionKind.OUT_OF_SCOPE
    return None


def _canonical_text(args: Dict[str, Any]) -> str:
    return json.dumps(args, sort_keys=True, default=str).lower()


def find_forbidden_token(args: Dict[str, Any]):
    match = _FORBIDDEN_RE.search(_canonical_text(args))
    return match.group(1) if match else None


def _bounded(value: Any, ceiling: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return ceiling
    return min(value, ceiling)


def _reject(kind: RejectionKind, message: str) -> Rejection:
    logger.info("intent rejected: kind=%s detail=%s", kind.value, message)
    return Rejection(kind=kind, message=message)


def validate(raw: RawIntent, tenant: TenantContext) -> ValidationResult:
    # 1. Sentinel: designed non-answer, forwarded verbatim
    kind = _sentinel(raw)
    if kind is not None:
        message = raw.message if isinstance(raw.message, str) else ""
        return Rejection(kind=kind, message=message)

    # 2. Entity allowlist
    if not catalog.is_known_entity(raw.entity):
        return _reject(
            RejectionKind.UNKNOWN_ENTITY,
            f"unknown entity {raw.entity!r}; allowed: "
            + ", ".join(catalog.allowed_entities()),
        )

    # 3. Operation allowlist (no mutating verb is a member)
    if not catalog.is_allowed_operation(raw.operation):
        return _reject(
            RejectionKind.UNKNOWN_OPERATION,
            f"unknown operation {raw.operation!r}; allowed: "
            + ", ".join(catalog.allowed_operations()),
        )

    entity = EntityName(raw.entity)
    operation = OperationName(raw.operation)

    # 4. Args shape
    args = raw.args if raw.args is not None else {}
    if not isinstance(args, dict):
        return _reject(RejectionKind.MALFORMED_INTENT, "args must be an object")
    where = args.get("where")
    if where is not None and not isinstance(where, dict):
        return _reject(RejectionKind.MALFORMED_INTENT, "args.where must be an object")

    # 5. Forbidden content, defense in depth behind gates 2 and 3
    token = find_forbidden_token(args)
    if token is not None:
        return _reject(RejectionKind.FORBIDDEN_CONTENT, f"forbidden token {token!r}")

    # Work on a copy so the raw intent stays as the model produced it
    args = copy.deepcopy(args)

    # 6. Tenant scope: overwrite, never merge
    where = args.get("where") or {}
    where[catalog.TENANT_FIELD] = tenant.tenant_id
    args["where"] = where

    # 7. Bound injection
    if operation in catalog.LIST_OPERATIONS:
        args["take"] = _bounded(args.get("take"), settings.AI_LIST_LIMIT)
    elif operation in catalog.GROUP_OPERATIONS:
        args["take"] = _bounded(args.get("take"), settings.AI_GROUP_LIMIT)

    explanation = raw.explanation if isinstance(raw.explanation, str) else ""

    return _issue(
        entity=entity,
        operation=operation,
        args=args,
        explanation=explanation,
        tenant_id=tenant.tenant_id,
    )
