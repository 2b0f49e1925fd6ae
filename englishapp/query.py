"""Filtered, paginated SELECT construction.

The data statement and the count statement are built from the same WHERE
fragment and the same parameter list, so the total always describes exactly
the rows the data statement pages through.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from .errors import ValidationError

# A1 < A2 < B1 < B2 < C1 < C2 < anything else
CEFR_LEVELS = ('A1', 'A2', 'B1', 'B2', 'C1', 'C2')


def cefr_order(column: str = 'cefr_level') -> str:
    whens = ' '.join(f"WHEN {column} = '{level}' THEN {rank}"
                     for rank, level in enumerate(CEFR_LEVELS, start=1))
    return f"CASE {whens} ELSE {len(CEFR_LEVELS) + 1} END"


CEFR_ORDER = cefr_order()

# (page - 1) * limit stays inside a signed 64-bit OFFSET
MAX_PAGE_VALUE = 2 ** 31 - 1


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 50

    def __post_init__(self):
        if not 1 <= self.page <= MAX_PAGE_VALUE:
            raise ValidationError(f"page must be between 1 and {MAX_PAGE_VALUE}")
        if not 1 <= self.limit <= MAX_PAGE_VALUE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_VALUE}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pages(self, total: int) -> int:
        return math.ceil(total / self.limit)

    def describe(self, total: int) -> dict:
        return {
            'total': total,
            'page': self.page,
            'limit': self.limit,
            'pages': self.pages(total),
        }

    @classmethod
    def from_args(cls, args: Mapping[str, Any], default_limit: int = 50) -> 'Pagination':
        return cls(
            page=_positive_int(args.get('page'), 1, 'page'),
            limit=_positive_int(args.get('limit'), default_limit, 'limit'),
        )


def _positive_int(raw, default: int, name: str) -> int:
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer")


@dataclass
class PageQuery:
    sql: str
    params: list = field(default_factory=list)
    count_sql: str = ''
    count_params: list = field(default_factory=list)


def is_present(value) -> bool:
    return value is not None and value != ''


def build_where(filters: Sequence[tuple[str, Any]]) -> tuple[str, list]:
    """AND-combine equality filters whose value is present"""
    clauses = []
    params = []
    for column, value in filters:
        if not is_present(value):
            continue
        clauses.append(f"{column} = ?")
        params.append(value)
    if not clauses:
        return '', params
    return ' WHERE ' + ' AND '.join(clauses), params


def build_page_query(source: str, filters: Sequence[tuple[str, Any]], order_by: str,
                     pagination: Pagination, columns: str = '*') -> PageQuery:
    where, params = build_where(filters)
    return PageQuery(
        sql=f"SELECT {columns} FROM {source}{where} ORDER BY {order_by} LIMIT ? OFFSET ?",
        params=params + [pagination.limit, pagination.offset],
        count_sql=f"SELECT COUNT(*) AS count FROM {source}{where}",
        count_params=list(params),
    )


def fetch_page(conn, query: PageQuery, pagination: Pagination) -> tuple[list[dict], dict]:
    rows = conn.fetchall(query.sql, query.params)
    total = int(conn.scalar(query.count_sql, query.count_params))
    return rows, pagination.describe(total)
