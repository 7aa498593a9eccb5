"""Structured filter -> OSLC `oslc.where` translation.

Schema-agnostic: callers validate field names against the tenant's
discovered shape before translating.
"""

from typing import Any, Iterable, List, Optional, Union

from app.infra.errors import InvalidInClauseError
from app.models.query import OrderByItem, QueryClause

NULL_OPS = {"null": "is null", "notnull": "is not null"}
COMPARISON_OPS = ("=", "!=", ">", ">=", "<", "<=")
SUPPORTED_OPS = COMPARISON_OPS + ("like", "in") + tuple(NULL_OPS)


def escape_literal(value: Any) -> str:
    """Render a value as an OSLC literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return "'" + str(value).replace("'", "''") + "'"


def _clause(raw: Union[QueryClause, dict]) -> QueryClause:
    return raw if isinstance(raw, QueryClause) else QueryClause.model_validate(raw)


def to_native_filter(clauses: Iterable[Union[QueryClause, dict]]) -> str:
    """
    Translate clauses into a flat ` and ` conjunction, preserving input order.

    Clauses without a field or operator are skipped. Operators other than
    null/notnull/in/like are emitted verbatim.

    Raises:
        InvalidInClauseError: an `in` clause whose value is not a list
    """
    parts: List[str] = []
    for raw in clauses:
        clause = _clause(raw)
        field, op, value = clause.field, clause.op, clause.value
        if not field or not op:
            continue
        if op in NULL_OPS:
            parts.append(f"{field} {NULL_OPS[op]}")
        elif op == "in":
            if not isinstance(value, (list, tuple)):
                raise InvalidInClauseError(field)
            parts.append(f"{field} in [{','.join(escape_literal(v) for v in value)}]")
        elif op == "like":
            parts.append(f"{field} like {escape_literal(value)}")
        else:
            parts.append(f"{field} {op} {escape_literal(value)}")
    return " and ".join(parts)


def to_order_by(order: Iterable[Union[OrderByItem, dict]]) -> Optional[str]:
    """Render `field dir` pairs for oslc.orderBy, or None when empty."""
    items = [o if isinstance(o, OrderByItem) else OrderByItem.model_validate(o) for o in order]
    if not items:
        return None
    return ",".join(f"{o.field} {o.dir}" for o in items)
