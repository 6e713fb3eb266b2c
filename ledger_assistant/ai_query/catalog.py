"""
Schema catalog for the chat assistant.

Everything the assistant may ever read is listed here: the entities, the
fields on each entity, and the read-only operations. Both sets are closed
enumerations; nothing a tenant or the language model sends can extend them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


class EntityName(str, Enum):
    INVOICE = "invoice"
    INVOICE_LINE = "invoiceLine"
    JOURNAL_ENTRY = "journalEntry"
    JOURNAL_LINE = "journalLine"
    ACCOUNT = "account"
    CONTACT = "contact"


class OperationName(str, Enum):
    FIND_MANY = "findMany"
    FIND_FIRST = "findFirst"
    FIND_UNIQUE = "findUnique"
    AGGREGATE = "aggregate"
    GROUP_BY = "groupBy"
    COUNT = "count"


# Field every entity is filtered on
TENANT_FIELD = "companyId"

LIST_OPERATIONS = frozenset({OperationName.FIND_MANY})
GROUP_OPERATIONS = frozenset({OperationName.GROUP_BY})


@dataclass(frozen=True)
class FieldSpec:
    attr: str  # ORM attribute on the mapped model
    type: str
    note: str = ""


@dataclass(frozen=True)
class EntitySpec:
    description: str
    fields: Dict[str, FieldSpec]
    relations: Tuple[str, ...] = ()


def _tenant() -> FieldSpec:
    return FieldSpec("company_id", "string", "tenant id, always set for you")


ENTITIES: Dict[EntityName, EntitySpec] = {
    EntityName.INVOICE: EntitySpec(
        description="Sales documents issued to contacts",
        fields={
            "id": FieldSpec("id", "string", "primary key"),
            "invoiceNo": FieldSpec("invoice_no", "string", "e.g. 'INV-0001'"),
            "date": FieldSpec("date", "date", "invoice date"),
            "dueDate": FieldSpec("due_date", "date", "payment due date"),
            "contactId": FieldSpec("contact_id", "string", "FK -> contact.id"),
            "status": FieldSpec(
                "status", "enum", "'DRAFT','SENT','PAID','OVERDUE','CANCELLED'"
            ),
            "docType": FieldSpec(
                "doc_type",
                "enum",
                "'INVOICE','QUOTATION','CREDIT_NOTE','DEBIT_NOTE'",
            ),
            "subtotal": FieldSpec("subtotal", "decimal"),
            "taxTotal": FieldSpec("tax_total", "decimal"),
            "total": FieldSpec("total", "decimal", "grand total including tax"),
            "notes": FieldSpec("notes", "string"),
            "createdAt": FieldSpec("created_at", "datetime"),
            TENANT_FIELD: _tenant(),
        },
        relations=("contactId -> contact", "invoiceLine.invoiceId -> invoice"),
    ),
    EntityName.INVOICE_LINE: EntitySpec(
        description="Line items of an invoice",
        fields={
            "id": FieldSpec("id", "string", "primary key"),
            "invoiceId": FieldSpec("invoice_id", "string", "FK -> invoice.id"),
            "itemName": FieldSpec("item_name", "string"),
            "itemCode": FieldSpec("item_code", "string"),
            "description": FieldSpec("description", "string"),
            "quantity": FieldSpec("quantity", "decimal"),
            "unitPrice": FieldSpec("unit_price", "decimal"),
            "discount": FieldSpec("discount", "decimal", "percentage 0-100"),
            "taxRate": FieldSpec("tax_rate", "decimal", "percentage 0-100"),
            "amount": FieldSpec("amount", "decimal", "computed line total"),
            TENANT_FIELD: _tenant(),
        },
        relations=("invoiceId -> invoice",),
    ),
    EntityName.JOURNAL_ENTRY: EntitySpec(
        description="General ledger journal headers",
        fields={
            "id": FieldSpec("id", "string", "primary key"),
            "entryNo": FieldSpec("entry_no", "string"),
            "date": FieldSpec("date", "date"),
            "description": FieldSpec("description", "string"),
            "reference": FieldSpec("reference", "string"),
            TENANT_FIELD: _tenant(),
        },
        relations=("journalLine.journalEntryId -> journalEntry",),
    ),
    EntityName.JOURNAL_LINE: EntitySpec(
        description="Debit/credit lines of a journal entry",
        fields={
            "id": FieldSpec("id", "string", "primary key"),
            "journalEntryId": FieldSpec(
                "journal_entry_id", "string", "FK -> journalEntry.id"
            ),
            "accountId": FieldSpec("account_id", "string", "FK -> account.id"),
            "description": FieldSpec("description", "string"),
            "debit": FieldSpec("debit", "decimal"),
            "credit": FieldSpec("credit", "decimal"),
            TENANT_FIELD: _tenant(),
        },
        relations=("journalEntryId -> journalEntry", "accountId -> account"),
    ),
    EntityName.ACCOUNT: EntitySpec(
        description="Chart of accounts",
        fields={
            "id": FieldSpec("id", "string", "primary key"),
            "code": FieldSpec(
                "code", "string", "'4xxx' revenue, '5xxx' COGS, '6xxx'+ expense"
            ),
            "name": FieldSpec("name", "string"),
            "type": FieldSpec(
                "type", "enum", "'ASSET','LIABILITY','EQUITY','REVENUE','EXPENSE'"
            ),
            "description": FieldSpec("description", "string"),
            "isActive": FieldSpec("is_active", "boolean"),
            TENANT_FIELD: _tenant(),
        },
    ),
    EntityName.CONTACT: EntitySpec(
        description="Customers and vendors",
        fields={
            "id": FieldSpec("id", "string", "primary key"),
            "code": FieldSpec("code", "string"),
            "name": FieldSpec("name", "string"),
            "email": FieldSpec("email", "string"),
            "phone": FieldSpec("phone", "string"),
            "address": FieldSpec("address", "string"),
            "type": FieldSpec("type", "enum", "'CUSTOMER','VENDOR','BOTH'"),
            "creditTerms": FieldSpec("credit_terms", "string", "e.g. 'Net 30'"),
            "creditLimit": FieldSpec("credit_limit", "decimal"),
            TENANT_FIELD: _tenant(),
        },
    ),
}

_ENTITY_VALUES = frozenset(e.value for e in EntityName)
_OPERATION_VALUES = frozenset(o.value for o in OperationName)


def is_known_entity(name: Any) -> bool:
    return isinstance(name, str) and name in _ENTITY_VALUES


def is_allowed_operation(name: Any) -> bool:
    return isinstance(name, str) and name in _OPERATION_VALUES


def allowed_entities() -> Tuple[str, ...]:
    return tuple(e.value for e in EntityName)


def allowed_operations() -> Tuple[str, ...]:
    return tuple(o.value for o in OperationName)


def describe_schema() -> str:
    """
    Render entities, fields and relations as plain text for the model prompt.
    Output order follows the enum order so the rendering is stable.
    Never used for safety decisions.
    """
    blocks = []
    for entity in EntityName:
        spec = ENTITIES[entity]
        lines = [f"Entity {entity.value}  -- {spec.description}"]
        width = max(len(name) for name in spec.fields)
        for name, field in spec.fields.items():
            line = f"  {name.ljust(width)}  {field.type}"
            if field.note:
                line += f"  -- {field.note}"
            lines.append(line)
        for relation in spec.relations:
            lines.append(f"  relation: {relation}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
