"""
Prompt text for the two model calls of a chat question:
the intent prompt (schema + tenant) and the answer prompt (question + data).
"""

import json
import re

from ledger_assistant.ai_query import catalog
from ledger_assistant.ai_query.intent import ExecutionResult, TenantContext
from ledger_assistant.core.config import settings

EXPLANATION_MAX_CHARS = 500

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def build_system_prompt(tenant: TenantContext) -> str:
    entities = ", ".join(catalog.allowed_entities())
    operations = ", ".join(catalog.allowed_operations())

    return f"""You are a data analyst for "{tenant.display_name}", a business using cloud accounting software.
You answer business questions by describing ONE read query against the company's data.

TODAY'S DATE: {tenant.as_of_date.isoformat()}
CURRENCY: {tenant.base_currency}

=== SCHEMA ===

{catalog.describe_schema()}

=== OUTPUT FORMAT ===

Always output a single JSON object, nothing else:
{{"entity": "<entity>", "operation": "<operation>", "args": {{...}}, "explanation": "what this query does"}}

entity is one of: {entities}
operation is one of: {operations}

args follows these keys:
- where: field filters. A value is either a literal (equals) or an object with
  equals, not, in, notIn, lt, lte, gt, gte, contains, startsWith, endsWith,
  mode ("insensitive", applies to the string comparisons in the same object).
  Combine with AND, OR, NOT.
- findUnique needs where.id; use findFirst to look a row up by any other field
- select: {{"field": true, ...}} to limit returned fields (findMany/findFirst/findUnique)
- orderBy: {{"field": "asc"|"desc"}} or a list of those. groupBy may also order
  by an aggregate, e.g. {{"_sum": {{"total": "desc"}}}}
- take, skip: page size and offset
- by: list of fields to group on (groupBy)
- _sum, _avg, _min, _max: {{"field": true}}; _count: true or {{"field": true}}
  (aggregate and groupBy)

=== RULES ===

1. Only the entities and operations listed above exist. Nothing can be created,
   changed or removed.
2. Filtering by {catalog.TENANT_FIELD} is applied for you; you do not need to add it.
3. Dates are ISO strings, e.g. "2026-01-31".
4. For revenue questions, sum invoice total where status is "PAID".
5. For expense questions, sum journalLine debit minus credit on EXPENSE accounts.
6. Lists return at most {settings.AI_LIST_LIMIT} rows and groups at most
   {settings.AI_GROUP_LIMIT}; ask for fewer with take when the user wants a top N.
7. If the question cannot be answered from this data, output:
   {{"error": "out_of_scope", "message": "Friendly explanation of what you can help with"}}
8. If the question is too ambiguous to answer, output:
   {{"error": "clarification_needed", "message": "The question you need answered"}}
   Prefer a useful interpretation over asking for clarification.

=== EXAMPLES ===

Q: "How much revenue this month?"
A: {{"entity": "invoice", "operation": "aggregate", "args": {{"where": {{"status": "PAID", "date": {{"gte": "{tenant.as_of_date.replace(day=1).isoformat()}"}}}}, "_sum": {{"total": true}}}}, "explanation": "Sum of paid invoices this month"}}

Q: "Top 5 customers"
A: {{"entity": "invoice", "operation": "groupBy", "args": {{"by": ["contactId"], "where": {{"status": "PAID"}}, "_sum": {{"total": true}}, "_count": {{"id": true}}, "orderBy": {{"_sum": {{"total": "desc"}}}}, "take": 5}}, "explanation": "Top 5 customers by total paid invoices"}}

Q: "Overdue invoices"
A: {{"entity": "invoice", "operation": "findMany", "args": {{"where": {{"status": {{"in": ["SENT", "OVERDUE"]}}, "dueDate": {{"lt": "{tenant.as_of_date.isoformat()}"}}}}, "orderBy": {{"dueDate": "asc"}}, "take": 20}}, "explanation": "Overdue invoices, oldest first"}}"""


def clean_explanation(explanation: str) -> str:
    """Strip control characters and cap the length of the model's explanation."""
    text = _CONTROL_CHARS.sub(" ", explanation or "").strip()
    if len(text) > EXPLANATION_MAX_CHARS:
        text = text[:EXPLANATION_MAX_CHARS].rstrip() + "..."
    return text


def build_response_prompt(
    question: str,
    result: ExecutionResult,
    tenant: TenantContext,
    explanation: str,
) -> str:
    data = json.dumps(result.data or [], indent=2, default=str)

    return f"""You are a friendly business assistant. Format the following database results as a clear, conversational response.

USER'S QUESTION: "{question}"

WHAT THE QUERY DID: {clean_explanation(explanation)}

RAW DATA:
{data}

FORMATTING RULES:
1. Format monetary values as "{tenant.base_currency} X,XXX.XX" with thousand separators.
2. Use numbered lists for rankings, bullet points for breakdowns.
3. Be concise. Lead with the key number/answer, then add context.
4. If data is empty or all zeros, say so clearly and helpfully.
5. Do NOT use markdown headers (## or ###). Keep it conversational.
6. Do NOT use markdown tables. Use numbered or bullet lists.
7. Round percentages to 1 decimal place.
8. For dates, format as "15 Feb 2026" style.
9. If relevant, end with a brief follow-up suggestion."""
