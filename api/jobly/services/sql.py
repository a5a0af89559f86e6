"""Parameterized SQL fragments for sparse, caller-chosen job fields.

Both builders emit asyncpg-style positional placeholders (``$1``, ``$2``...)
and return the bound values separately; no value is ever interpolated into
the statement text.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from jobly.services.errors import RepositoryValidationError


@dataclass(slots=True)
class PartialUpdate:
    set_clause: str
    values: list[Any]
    id_placeholder: str


@dataclass(slots=True)
class SqlFilter:
    where_sql: str = ""
    values: list[Any] = field(default_factory=list)


def sql_for_partial_update(data: Mapping[str, Any], column_map: Mapping[str, str]) -> PartialUpdate:
    """Build the ``set`` clause of a single-row update.

    ``data`` maps logical field names to new values. ``column_map`` renames
    the logical fields whose column name differs; any other key is used as
    the column name unchanged. The returned ``id_placeholder`` is the next
    free positional parameter, for the caller's ``where id = ...``.
    """
    if not data:
        raise RepositoryValidationError("no data")

    fragments: list[str] = []
    values: list[Any] = []
    for key, value in data.items():
        column = column_map.get(key, key)
        values.append(value)
        fragments.append(f'"{column}"=${len(values)}')

    return PartialUpdate(
        set_clause=", ".join(fragments),
        values=values,
        id_placeholder=f"${len(values) + 1}",
    )


def sql_for_job_filters(
    *,
    title: str | None = None,
    min_salary: int | None = None,
    has_equity: bool | None = None,
) -> SqlFilter:
    conditions: list[str] = []
    params: list[Any] = []

    def bind(value: Any) -> str:
        params.append(value)
        return f"${len(params)}"

    if title:
        conditions.append(f"title ilike {bind(f'%{escape_like(title)}%')}")
    if min_salary is not None:
        conditions.append(f"salary >= {bind(min_salary)}")
    if has_equity is True:
        conditions.append("equity > 0")

    if not conditions:
        return SqlFilter()
    return SqlFilter(where_sql="where " + " and ".join(conditions), values=params)


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
