"""Parameterized SQL fragment construction.

Every value ends up in the positional parameter list (asyncpg ``$n``
placeholders). Only identifiers and operators are interpolated into the SQL
text, and both are checked against a whitelist first.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from core.exceptions import ConfigurationError

FIELD_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$")
PLACEHOLDER_PATTERN = re.compile(r"\$(\d+)")

ALLOWED_OPERATORS = frozenset(
    {"=", "!=", "<>", "<", ">", "<=", ">=", "LIKE", "ILIKE", "IN", "NOT IN"}
)
SORT_DIRECTIONS = frozenset({"ASC", "DESC"})


def is_valid_field(name: Any) -> bool:
    """True for ``column`` or ``table.column`` identifiers."""
    return isinstance(name, str) and FIELD_NAME_PATTERN.fullmatch(name) is not None


def is_valid_operator(operator: Any) -> bool:
    return isinstance(operator, str) and operator.upper() in ALLOWED_OPERATORS


def require_field(name: Any) -> str:
    if not is_valid_field(name):
        raise ConfigurationError(f"Invalid field name: {name!r}")
    return name


def require_operator(operator: Any) -> str:
    if not is_valid_operator(operator):
        raise ConfigurationError(f"Invalid operator: {operator!r}")
    return operator.upper()


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally.

    The backslash goes first, otherwise the escapes added for ``%`` and ``_``
    would themselves be escaped.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def like_pattern(value: str) -> str:
    """Substring pattern for ILIKE: escaped, then wrapped in ``%``."""
    return f"%{escape_like(value)}%"


@dataclass(frozen=True)
class Exact:
    field: str
    value: Any
    operator: str = "="


@dataclass(frozen=True)
class Like:
    field: str
    value: Optional[str]


@dataclass(frozen=True)
class In:
    field: str
    values: Optional[Sequence[Any]]
    negate: bool = False


@dataclass(frozen=True)
class Range:
    field: str
    min: Any = None
    max: Any = None


@dataclass(frozen=True)
class Exists:
    """EXISTS over trusted subquery text written with local ``$1..$k`` placeholders."""

    subquery: Optional[str]
    params: Sequence[Any] = field(default_factory=tuple)
    negate: bool = False


Condition = Union[Exact, Like, In, Range, Exists]


class WhereClause(NamedTuple):
    clause: str
    params: List[Any]
    next_index: int


def build_in_clause(values: Sequence[Any], start_index: int = 1) -> Tuple[str, List[Any], int]:
    """Placeholders for an IN list: ``("$3, $4", [a, b], 5)``."""
    values = list(values or [])
    if not values:
        raise ConfigurationError("IN condition requires at least one value")
    placeholders = ", ".join(f"${start_index + offset}" for offset in range(len(values)))
    return placeholders, values, start_index + len(values)


def renumber_placeholders(subquery: str, param_count: int, offset: int) -> str:
    """Shift local ``$1..$k`` placeholders by ``offset``.

    The subquery must use exactly ``$1..$k`` where ``k`` is ``param_count``.
    """
    used = {int(match) for match in PLACEHOLDER_PATTERN.findall(subquery)}
    if used != set(range(1, param_count + 1)):
        raise ConfigurationError(
            "Subquery placeholders do not match its parameters",
            details=[f"placeholders: {sorted(used)}", f"params: {param_count}"],
        )
    return PLACEHOLDER_PATTERN.sub(lambda m: f"${int(m.group(1)) + offset}", subquery)


def _render(condition: Condition, index: int) -> Optional[Tuple[str, List[Any]]]:
    """Render one condition starting at placeholder ``index``; None means skip."""
    if isinstance(condition, Exact):
        column = require_field(condition.field)
        operator = require_operator(condition.operator)
        if operator in ("IN", "NOT IN"):
            raise ConfigurationError(f"Use an In condition for {operator} on {column}")
        if condition.value is None:
            return None
        return f"{column} {operator} ${index}", [condition.value]

    if isinstance(condition, Like):
        column = require_field(condition.field)
        if condition.value is None:
            return None
        return f"{column} ILIKE ${index}", [like_pattern(str(condition.value))]

    if isinstance(condition, In):
        column = require_field(condition.field)
        if condition.values is None:
            return None
        placeholders, params, _ = build_in_clause(condition.values, index)
        keyword = "NOT IN" if condition.negate else "IN"
        return f"{column} {keyword} ({placeholders})", params

    if isinstance(condition, Range):
        column = require_field(condition.field)
        if condition.min is not None and condition.max is not None:
            return f"{column} BETWEEN ${index} AND ${index + 1}", [condition.min, condition.max]
        if condition.min is not None:
            return f"{column} >= ${index}", [condition.min]
        if condition.max is not None:
            return f"{column} <= ${index}", [condition.max]
        raise ConfigurationError(f"Range condition on {column} needs a min or a max")

    if isinstance(condition, Exists):
        if condition.subquery is None:
            return None
        params = list(condition.params)
        subquery = renumber_placeholders(condition.subquery.strip(), len(params), index - 1)
        keyword = "NOT EXISTS" if condition.negate else "EXISTS"
        return f"{keyword} ({subquery})", params

    raise ConfigurationError(f"Unsupported condition type: {type(condition).__name__}")


def build_where_clause(conditions: Sequence[Optional[Condition]], start_index: int = 1) -> WhereClause:
    """Build ``WHERE a AND b ...`` plus its parameters.

    ``None`` entries and conditions whose value is None are skipped. An empty
    result has no ``WHERE`` keyword at all.
    """
    parts: List[str] = []
    params: List[Any] = []
    index = start_index
    for condition in conditions:
        if condition is None:
            continue
        rendered = _render(condition, index)
        if rendered is None:
            continue
        sql, values = rendered
        parts.append(sql)
        params.extend(values)
        index += len(values)

    if not parts:
        return WhereClause("", [], start_index)
    return WhereClause("WHERE " + " AND ".join(parts), params, index)


def build_order_by(orderings: Sequence[Tuple[str, str]]) -> str:
    """``ORDER BY`` from ``(field, direction)`` pairs; direction defaults to ASC."""
    if not orderings:
        return ""
    rendered = []
    for column, direction in orderings:
        require_field(column)
        direction = (direction or "ASC").upper()
        if direction not in SORT_DIRECTIONS:
            direction = "ASC"
        rendered.append(f"{column} {direction}")
    return "ORDER BY " + ", ".join(rendered)


def build_pagination_clause(limit: int, offset: int, start_index: int = 1) -> Tuple[str, List[Any], int]:
    return f"LIMIT ${start_index} OFFSET ${start_index + 1}", [limit, offset], start_index + 2


def build_set_clause(values: Dict[str, Any], start_index: int = 1) -> Tuple[str, List[Any], int]:
    """``col = $n, ...`` for a partial update; keys are column names."""
    parts = []
    params = []
    index = start_index
    for column, value in values.items():
        require_field(column)
        parts.append(f"{column} = ${index}")
        params.append(value)
        index += 1
    return ", ".join(parts), params, index


def build_batch_insert(
    table: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    start_index: int = 1,
    returning: Optional[str] = None,
) -> Tuple[str, List[Any]]:
    """One multi-row INSERT, ``VALUES ($1, $2), ($3, $4), ...``.

    Placeholders are numbered from the row index and column position, so no
    value is ever written into the statement text.
    """
    require_field(table)
    if not columns:
        raise ConfigurationError(f"Batch insert into {table} needs at least one column")
    for column in columns:
        require_field(column)
    if not rows:
        raise ConfigurationError(f"Batch insert into {table} needs at least one row")

    width = len(columns)
    tuples = []
    params: List[Any] = []
    for row_number, row in enumerate(rows):
        if len(row) != width:
            raise ConfigurationError(
                f"Row {row_number} has {len(row)} values, expected {width}"
            )
        base = start_index + row_number * width
        tuples.append("(" + ", ".join(f"${base + position}" for position in range(width)) + ")")
        params.extend(row)

    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES {', '.join(tuples)}"
    if returning:
        sql += f" RETURNING {returning}"
    return sql, params
