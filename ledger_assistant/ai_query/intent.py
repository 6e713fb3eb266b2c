from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


# =========================
# Tenant
# =========================
class TenantContext(BaseModel):
    tenant_id: str
    display_name: str
    base_currency: str
    as_of_date: date

    model_config = ConfigDict(frozen=True)


# =========================
# Model output (untrusted)
# =========================
class RawIntent(BaseModel):
    """
    What the language model proposed. Every field is untrusted text; types
    are deliberately loose so that odd model output reaches the validator
    instead of failing here.
    Either entity/operation/args/explanation is set, or error/message.
    """

    entity: Any = None
    operation: Any = None
    args: Any = None
    explanation: Any = ""

    error: Any = None
    message: Any = None

    model_config = ConfigDict(extra="ignore")


# =========================
# Validation outcome
# =========================
class RejectionKind(str, Enum):
    OUT_OF_SCOPE = "outOfScope"
    CLARIFICATION_NEEDED = "clarificationNeeded"
    UNKNOWN_ENTITY = "unknownEntity"
    UNKNOWN_OPERATION = "unknownOperation"
    FORBIDDEN_CONTENT = "forbiddenContent"
    MALFORMED_INTENT = "malformedIntent"


SENTINEL_KINDS = frozenset(
    {RejectionKind.OUT_OF_SCOPE, RejectionKind.CLARIFICATION_NEEDED}
)


@dataclass(frozen=True)
class Rejection:
    kind: RejectionKind
    # Sentinels: the model's own message. Gate failures: detail for logs only.
    message: str

    @property
    def is_sentinel(self) -> bool:
        return self.kind in SENTINEL_KINDS


# =========================
# Execution outcome
# =========================
class ExecutionResult(BaseModel):
    success: bool
    data: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None
