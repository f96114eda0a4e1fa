from __future__ import annotations

from typing import Any

from radiusedge_api.query import Dialect, SelectQuery, check_identifier


def insert_row(cursor, dialect: Dialect, table: str, values: dict[str, Any]) -> None:
    columns = [check_identifier(column) for column in values]
    cursor.execute(
        f"INSERT INTO {check_identifier(table)} ({', '.join(columns)}) "
        f"VALUES ({', '.join([dialect.placeholder] * len(columns))})",
        tuple(values.values()),
    )


def select_rows(cursor, dialect: Dialect, query: SelectQuery) -> list[dict[str, Any]]:
    sql, params = query.render(dialect)
    cursor.execute(sql, tuple(params))
    return [dict(row) for row in cursor.fetchall()]


def get_row(cursor, dialect: Dialect, table: str, columns: list[str], record_id: str) -> dict | None:
    query = SelectQuery(table, columns).where_equals("id", record_id).limit_to(1)
    rows = select_rows(cursor, dialect, query)
    return rows[0] if rows else None
