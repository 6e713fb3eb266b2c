from datetime import date, datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from sqlalchemy import String, and_, or_, not_, true, false, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_assistant.ai_query.catalog import (
    ENTITIES,
    EntityName,
    FieldSpec,
    OperationName,
)
from ledger_assistant.core import models


# -----------------------------------------------------------------------------
# READ-ONLY DATA ACCESS
# Purpose: run catalog-described reads ("findMany", "groupBy", ...) against the
# relational schema. Field names are the camelCase names from the catalog;
# anything not registered there is an argument error.
# There are no write operations on purpose.
# -----------------------------------------------------------------------------


class QueryArgumentError(ValueError):
    """The query arguments reference something this layer cannot run."""


ENTITY_MODELS: Dict[EntityName, type] = {
    EntityName.INVOICE: models.Invoice,
    EntityName.INVOICE_LINE: models.InvoiceLine,
    EntityName.JOURNAL_ENTRY: models.JournalEntry,
    EntityName.JOURNAL_LINE: models.JournalLine,
    EntityName.ACCOUNT: models.Account,
    EntityName.CONTACT: models.Contact,
}

# Every entity is keyed by id; findUnique must name one
UNIQUE_KEY = "id"

AGGREGATE_FUNCS = {
    "_sum": func.sum,
    "_avg": func.avg,
    "_min": func.min,
    "_max": func.max,
}

AGGREGATE_KEYS = frozenset(AGGREGATE_FUNCS) | {"_count"}


def _plain(value: Any) -> Any:
    """Convert DB values to JSON-friendly ones."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _all_of(clauses) -> Any:
    return and_(true(), *clauses)


def _any_of(clauses) -> Any:
    return or_(false(), *clauses)


def _folded(column):
    return func.lower(column, type_=String)


def _direction(column, direction: Any):
    if isinstance(direction, dict):
        direction = direction.get("sort")
    if direction == "asc":
        return column.asc()
    if direction == "desc":
        return column.desc()
    raise QueryArgumentError(f"invalid sort direction {direction!r}")


class EntityDelegate:
    """Read handle for one entity, bound to a request-scoped session."""

    def __init__(self, db: AsyncSession, entity: EntityName):
        self.db = db
        self.entity = entity
        self.model = ENTITY_MODELS[entity]
        self.fields: Dict[str, FieldSpec] = ENTITIES[entity].fields

    # ------------------------------------------------------------------
    # Argument translation
    # ------------------------------------------------------------------
    def _spec(self, name: Any) -> FieldSpec:
        spec = self.fields.get(name) if isinstance(name, str) else None
        if spec is None:
            raise QueryArgumentError(
                f"unknown field {name!r} on {self.entity.value}"
            )
        return spec

    def _column(self, name: Any):
        return getattr(self.model, self._spec(name).attr)

    def _coerce(self, name: str, value: Any) -> Any:
        """Parse ISO strings for date columns; other values pass through."""
        if not isinstance(value, str):
            return value
        kind = self._spec(name).type
        try:
            if kind == "date":
                return date.fromisoformat(value[:10])
            if kind == "datetime":
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise QueryArgumentError(f"invalid {kind} value {value!r} for {name}")
        return value

    def _where(self, where: Any) -> List[Any]:
        if where is None:
            return []
        if not isinstance(where, dict):
            raise QueryArgumentError("where must be an object")

        clauses = []
        for key, value in where.items():
            if key == "AND":
                clauses.append(_all_of(self._groups(value)))
            elif key == "OR":
                clauses.append(_any_of(self._groups(value)))
            elif key == "NOT":
                clauses.append(not_(_all_of(self._groups(value))))
            else:
                clauses.append(self._condition(key, value))
        return clauses

    def _groups(self, value: Any) -> List[Any]:
        items = value if isinstance(value, list) else [value]
        return [_all_of(self._where(item)) for item in items]

    def _condition(self, name: str, value: Any):
        column = self._column(name)
        if not isinstance(value, dict):
            return self._equals(column, name, value)

        insensitive = value.get("mode") == "insensitive"
        clauses = []
        for op, operand in value.items():
            if op == "mode":
                continue
            if op == "equals":
                if insensitive and isinstance(operand, str):
                    clauses.append(_folded(column) == operand.lower())
                else:
                    clauses.append(self._equals(column, name, operand))
            elif op == "not":
                if isinstance(operand, dict):
                    clauses.append(not_(self._condition(name, operand)))
                elif operand is None:
                    clauses.append(column.is_not(None))
                elif insensitive and isinstance(operand, str):
                    clauses.append(_folded(column) != operand.lower())
                else:
                    clauses.append(column != self._coerce(name, operand))
            elif op in ("in", "notIn"):
                if not isinstance(operand, list):
                    raise QueryArgumentError(f"{op} on {name} needs a list")
                target = column
                if insensitive and all(isinstance(v, str) for v in operand):
                    target, values = _folded(column), [v.lower() for v in operand]
                else:
                    values = [self._coerce(name, v) for v in operand]
                clauses.append(
                    target.in_(values) if op == "in" else target.not_in(values)
                )
            elif op == "lt":
                clauses.append(column < self._coerce(name, operand))
            elif op == "lte":
                clauses.append(column <= self._coerce(name, operand))
            elif op == "gt":
                clauses.append(column > self._coerce(name, operand))
            elif op == "gte":
                clauses.append(column >= self._coerce(name, operand))
            elif op in ("contains", "startsWith", "endsWith"):
                clauses.append(self._text_match(column, op, operand, insensitive))
            else:
                raise QueryArgumentError(f"unsupported filter {op!r} on {name}")
        return _all_of(clauses)

    def _equals(self, column, name: str, value: Any):
        if value is None:
            return column.is_(None)
        return column == self._coerce(name, value)

    @staticmethod
    def _text_match(column, op: str, operand: Any, insensitive: bool):
        if not isinstance(operand, str):
            raise QueryArgumentError(f"{op} needs a string")
        if insensitive:
            column, operand = _folded(column), operand.lower()
        if op == "contains":
            return column.contains(operand, autoescape=True)
        if op == "startsWith":
            return column.startswith(operand, autoescape=True)
        return column.endswith(operand, autoescape=True)

    def _selected(self, select_arg: Any) -> List[str]:
        if select_arg is None:
            return list(self.fields)
        if not isinstance(select_arg, dict):
            raise QueryArgumentError("select must be an object")
        names = [name for name, wanted in select_arg.items() if wanted]
        for name in names:
            self._spec(name)
        if not names:
            raise QueryArgumentError("select picks no fields")
        return names

    def _aggregates(self, args: Dict[str, Any]) -> List[Tuple[str, str, Any]]:
        """Collect (key, field, expression) for _sum/_avg/_min/_max/_count."""
        out = []
        for key, fn in AGGREGATE_FUNCS.items():
            spec = args.get(key)
            if spec is None:
                continue
            if not isinstance(spec, dict):
                raise QueryArgumentError(f"{key} must be an object")
            for name, wanted in spec.items():
                if wanted:
                    out.append((key, name, fn(self._column(name))))

        count = args.get("_count")
        if count is True:
            out.append(("_count", "_all", func.count()))
        elif isinstance(count, dict):
            for name, wanted in count.items():
                if not wanted:
                    continue
                if name == "_all":
                    out.append(("_count", "_all", func.count()))
                else:
                    out.append(("_count", name, func.count(self._column(name))))
        elif count not in (None, False):
            raise QueryArgumentError("_count must be true or an object")
        return out

    def _aggregate_expr(self, key: str, name: str):
        if key == "_count":
            return func.count() if name == "_all" else func.count(self._column(name))
        return AGGREGATE_FUNCS[key](self._column(name))

    def _order_by(self, stmt, order_by: Any, allow_aggregates: bool = False):
        if order_by is None:
            return stmt
        items = order_by if isinstance(order_by, list) else [order_by]
        for item in items:
            if not isinstance(item, dict):
                raise QueryArgumentError("orderBy must be an object or a list")
            for key, direction in item.items():
                if key in AGGREGATE_KEYS:
                    if not allow_aggregates or not isinstance(direction, dict):
                        raise QueryArgumentError(f"cannot order by {key} here")
                    for name, agg_direction in direction.items():
                        stmt = stmt.order_by(
                            _direction(self._aggregate_expr(key, name), agg_direction)
                        )
                else:
                    stmt = stmt.order_by(_direction(self._column(key), direction))
        return stmt

    @staticmethod
    def _page(stmt, args: Dict[str, Any]):
        for key in ("take", "skip"):
            value = args.get(key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise QueryArgumentError(f"{key} must be a non-negative integer")
            stmt = stmt.limit(value) if key == "take" else stmt.offset(value)
        return stmt

    @staticmethod
    def _nest(row: Dict[str, Any], aggregates) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for key, name, _ in aggregates:
            out.setdefault(key, {})[name] = _plain(row[f"{key}__{name}"])
        return out

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def find_many(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        names = self._selected(args.get("select"))
        stmt = select(*(self._column(n).label(n) for n in names)).where(
            *self._where(args.get("where"))
        )
        stmt = self._order_by(stmt, args.get("orderBy"))
        stmt = self._page(stmt, args)

        result = await self.db.execute(stmt)
        return [{k: _plain(v) for k, v in row.items()} for row in result.mappings().all()]

    async def find_first(self, args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = await self.find_many({**args, "take": 1})
        return rows[0] if rows else None

    async def find_unique(self, args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        # The tenant filter alone never identifies a row
        where = args.get("where")
        key = where.get(UNIQUE_KEY) if isinstance(where, dict) else None
        if isinstance(key, dict):
            key = key.get("equals")
        if key is None or isinstance(key, (dict, list)):
            raise QueryArgumentError(f"findUnique needs where.{UNIQUE_KEY}")
        return await self.find_first(args)

    async def count(self, args: Dict[str, Any]) -> int:
        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(*self._where(args.get("where")))
        )
        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def aggregate(self, args: Dict[str, Any]) -> Dict[str, Any]:
        aggregates = self._aggregates(args)
        if not aggregates:
            raise QueryArgumentError("aggregate needs _sum, _avg, _min, _max or _count")

        stmt = select(
            *(expr.label(f"{key}__{name}") for key, name, expr in aggregates)
        ).where(*self._where(args.get("where")))

        result = await self.db.execute(stmt)
        return self._nest(result.mappings().one(), aggregates)

    async def group_by(self, args: Dict[str, Any]) -> List[Dict[str, Any]]:
        by = args.get("by")
        if isinstance(by, str):
            by = [by]
        if not isinstance(by, list) or not by:
            raise QueryArgumentError("groupBy needs a non-empty 'by' list")
        if args.get("having") is not None:
            raise QueryArgumentError("having is not supported")

        group_columns = [self._column(name) for name in by]
        aggregates = self._aggregates(args)

        stmt = (
            select(
                *(col.label(name) for col, name in zip(group_columns, by)),
                *(expr.label(f"{key}__{name}") for key, name, expr in aggregates),
            )
            .where(*self._where(args.get("where")))
            .group_by(*group_columns)
        )
        stmt = self._order_by(stmt, args.get("orderBy"), allow_aggregates=True)
        stmt = self._page(stmt, args)

        result = await self.db.execute(stmt)
        rows = []
        for row in result.mappings().all():
            record = {name: _plain(row[name]) for name in by}
            record.update(self._nest(row, aggregates))
            rows.append(record)
        return rows


class DataAccess:
    """Per-request entry point: one delegate per catalog entity."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def delegate(self, entity: EntityName) -> EntityDelegate:
        return EntityDelegate(self.db, entity)


# Fixed dispatch table. Only catalog operations have a handler.
Handler = Callable[[EntityDelegate, Dict[str, Any]], Awaitable[Any]]

OPERATIONS: Dict[OperationName, Handler] = {
    OperationName.FIND_MANY: lambda d, args: d.find_many(args),
    OperationName.FIND_FIRST: lambda d, args: d.find_first(args),
    OperationName.FIND_UNIQUE: lambda d, args: d.find_unique(args),
    OperationName.AGGREGATE: lambda d, args: d.aggregate(args),
    OperationName.GROUP_BY: lambda d, args: d.group_by(args),
    OperationName.COUNT: lambda d, args: d.count(args),
}
