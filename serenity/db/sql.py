"""
Statement helpers shared by every storage backend.

Statements are written once with ``$1, $2, ...`` placeholders. The helpers here
turn them into SQLAlchemy text clauses with named binds (the driver then emits
its own paramstyle), split off ``RETURNING`` clauses for engines that need them
emulated, and build the filter/insert/update statements used by the services
so that no caller numbers placeholders by hand.
"""

from datetime import date, datetime
import json
import re
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import TextClause, text

from ..core.constants import MAX_PAGE_SIZE

PLACEHOLDER_RE = re.compile(r"\$(\d+)")
QUOTED_RE = re.compile(r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\")")
IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

RETURNING_RE = re.compile(r"\s+RETURNING\s+(?P<columns>.+?)\s*;?\s*$", re.IGNORECASE | re.DOTALL)
INSERT_RE = re.compile(r"^\s*INSERT\s+INTO\s+(?P<table>\w+)", re.IGNORECASE)
UPDATE_RE = re.compile(
    r"^\s*UPDATE\s+(?P<table>\w+)\s+SET\s+.+?\s+WHERE\s+(?P<where>.+?)\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)
DELETE_RE = re.compile(
    r"^\s*DELETE\s+FROM\s+(?P<table>\w+)(?:\s+WHERE\s+(?P<where>.+?))?\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)


def bind_name(index: int) -> str:
    return f"p{index}"


def statement_verb(statement: str) -> str:
    parts = statement.lstrip().split(None, 1)
    return parts[0].upper() if parts else ""


def translate_placeholders(statement: str) -> tuple[str, list[int]]:
    """Rewrite ``$n`` to ``:pn`` outside of quoted literals.

    Colons inside literals are escaped so SQLAlchemy does not read them as
    binds. Returns the rewritten text and the placeholder indexes it uses.
    """
    used: list[int] = []

    def _replace(match: re.Match) -> str:
        index = int(match.group(1))
        used.append(index)
        return f":{bind_name(index)}"

    pieces = []
    for position, segment in enumerate(QUOTED_RE.split(statement)):
        if position % 2:
            pieces.append(segment.replace(":", "\\:"))
        else:
            pieces.append(PLACEHOLDER_RE.sub(_replace, segment))
    return "".join(pieces), used


def coerce_param(value: Any) -> Any:
    # Flags are stored as 0/1 on every engine.
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    if isinstance(value, datetime):
        return value.isoformat(sep=" ", timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    return value


def prepare(statement: str, params: Sequence[Any] = ()) -> tuple[TextClause, dict[str, Any]]:
    sql, used = translate_placeholders(statement)
    values: dict[str, Any] = {}
    for index in used:
        if index < 1 or index > len(params):
            raise ValueError(
                f"Placeholder ${index} has no matching parameter ({len(params)} given)"
            )
        values[bind_name(index)] = coerce_param(params[index - 1])
    return text(sql), values


def split_returning(statement: str) -> tuple[str, str | None]:
    match = RETURNING_RE.search(statement)
    if not match or statement_verb(statement) not in {"INSERT", "UPDATE", "DELETE"}:
        return statement, None
    return statement[: match.start()], match.group("columns").strip()


def _check_identifier(name: str) -> str:
    if not IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def _as_non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, str):
        if not value.strip().isdigit():
            raise ValueError(f"{name} must be a non-negative integer")
        value = int(value)
    if not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 0:
        raise ValueError(f"{name} must be a non-negative integer")
    return value


def clamp_limit(limit: Any, max_limit: int = MAX_PAGE_SIZE) -> int:
    return min(max(_as_non_negative_int(limit, "limit"), 1), max_limit)


def limit_offset(limit: Any, offset: Any = 0, max_limit: int = MAX_PAGE_SIZE) -> str:
    """Render a pagination clause with validated integers inlined.

    The values are never sent as bound parameters: MySQL prepared statements
    reject placeholders in this position.
    """
    return f"LIMIT {clamp_limit(limit, max_limit)} OFFSET {_as_non_negative_int(offset, 'offset')}"


class Filter:
    """Accumulates ``AND``-ed predicates and their parameters.

    One instance can be rendered into both a page query and its ``COUNT(*)``
    companion so the two always agree on the predicate.
    """

    def __init__(self) -> None:
        self.clauses: list[str] = []
        self.params: list[Any] = []

    def __bool__(self) -> bool:
        return bool(self.clauses)

    def placeholder(self, value: Any) -> str:
        self.params.append(value)
        return f"${len(self.params)}"

    def compare(self, column: str, operator: str, value: Any) -> "Filter":
        if operator not in {"=", "<>", "!=", "<", "<=", ">", ">="}:
            raise ValueError(f"Unsupported operator: {operator}")
        self.clauses.append(f"{_check_identifier(column)} {operator} {self.placeholder(value)}")
        return self

    def equals(self, column: str, value: Any) -> "Filter":
        return self.compare(column, "=", value)

    def equals_if(self, column: str, value: Any) -> "Filter":
        if value is not None and value != "":
            self.equals(column, value)
        return self

    def sql(self) -> str:
        return f" WHERE {' AND '.join(self.clauses)}" if self.clauses else ""


def build_insert(
    table: str, values: Mapping[str, Any], returning: str | None = "*"
) -> tuple[str, list[Any]]:
    if not values:
        raise ValueError("Nothing to insert")
    columns = [_check_identifier(column) for column in values]
    params = list(values.values())
    placeholders = ", ".join(f"${index}" for index in range(1, len(params) + 1))
    sql = f"INSERT INTO {_check_identifier(table)} ({', '.join(columns)}) VALUES ({placeholders})"
    if returning:
        sql += f" RETURNING {returning}"
    return sql, params


def build_update(
    table: str,
    patch: Mapping[str, Any],
    key: Any,
    *,
    key_column: str = "id",
    returning: str | None = "*",
    touch: bool = True,
) -> tuple[str, list[Any]]:
    """Turn a patch (only the fields to change) into an UPDATE statement."""
    if not patch:
        raise ValueError("No fields to update")
    params: list[Any] = []
    assignments = []
    for column, value in patch.items():
        params.append(value)
        assignments.append(f"{_check_identifier(column)} = ${len(params)}")
    if touch:
        assignments.append("updated_at = CURRENT_TIMESTAMP")
    params.append(key)
    sql = (
        f"UPDATE {_check_identifier(table)} SET {', '.join(assignments)} "
        f"WHERE {_check_identifier(key_column)} = ${len(params)}"
    )
    if returning:
        sql += f" RETURNING {returning}"
    return sql, params


def in_clause(column: str, values: Iterable[Any], start: int = 1) -> str:
    placeholders = ", ".join(f"${start + offset}" for offset, _ in enumerate(values))
    return f"{_check_identifier(column)} IN ({placeholders})"
