from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Sequence

_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")


@dataclass(frozen=True)
class Dialect:
    name: str
    placeholder: str


POSTGRES = Dialect("postgres", "%s")
SQLITE = Dialect("sqlite", "?")
DIALECTS = {d.name: d for d in (POSTGRES, SQLITE)}


def check_identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _array_elements(dialect: Dialect, column: str) -> str:
    # Rows over the text of each element of a JSON-array TEXT column.
    if dialect is SQLITE:
        return f"json_each(CASE WHEN json_valid({column}) THEN {column} ELSE '[]' END) AS elem"
    return (
        f"jsonb_array_elements_text(CASE WHEN COALESCE({column}, '') = '' "
        f"THEN '[]'::jsonb ELSE {column}::jsonb END) AS elem"
    )


def _element_value(dialect: Dialect) -> str:
    return "elem.value" if dialect is SQLITE else "elem"


@dataclass(frozen=True)
class Equals:
    column: str
    value: Any

    def render(self, dialect: Dialect) -> tuple[str, list[Any]]:
        return f"{self.column} = {dialect.placeholder}", [self.value]


@dataclass(frozen=True)
class ContainsAny:
    """Case-insensitive substring match OR-ed across columns.

    ``array_columns`` hold JSON arrays; they match when any single element
    contains the text, never on the serialized array.
    """

    columns: tuple[str, ...]
    text: str
    array_columns: tuple[str, ...] = ()

    def render(self, dialect: Dialect) -> tuple[str, list[Any]]:
        p = dialect.placeholder
        like = f"LIKE {p} ESCAPE '\\'"
        clauses = [f"LOWER({column}) {like}" for column in self.columns]
        for column in self.array_columns:
            clauses.append(
                f"EXISTS (SELECT 1 FROM {_array_elements(dialect, column)} "
                f"WHERE LOWER({_element_value(dialect)}) {like})"
            )
        pattern = f"%{escape_like(self.text.lower())}%"
        return "(" + " OR ".join(clauses) + ")", [pattern] * len(clauses)


@dataclass
class SelectQuery:
    """SELECT builder. Identifiers are checked, values are always bound."""

    table: str
    columns: Sequence[str]
    predicates: list[Equals | ContainsAny] = field(default_factory=list)
    ordering: list[tuple[str, bool]] = field(default_factory=list)
    limit: int | None = None

    def __post_init__(self) -> None:
        check_identifier(self.table)
        for column in self.columns:
            check_identifier(column)

    def where_equals(self, column: str, value: Any) -> SelectQuery:
        self.predicates.append(Equals(check_identifier(column), value))
        return self

    def where_contains_any(
        self, columns: Sequence[str], text: str, array_columns: Sequence[str] = ()
    ) -> SelectQuery:
        if not columns and not array_columns:
            raise ValueError("where_contains_any needs at least one column")
        for column in (*columns, *array_columns):
            check_identifier(column)
        self.predicates.append(ContainsAny(tuple(columns), text, tuple(array_columns)))
        return self

    def order_by(self, column: str, descending: bool = False) -> SelectQuery:
        self.ordering.append((check_identifier(column), descending))
        return self

    def limit_to(self, limit: int | None) -> SelectQuery:
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        self.limit = limit
        return self

    def render(self, dialect: Dialect) -> tuple[str, list[Any]]:
        params: list[Any] = []
        sql = f"SELECT {', '.join(self.columns)} FROM {self.table}"
        if self.predicates:
            clauses = []
            for predicate in self.predicates:
                clause, values = predicate.render(dialect)
                clauses.append(clause)
                params.extend(values)
            sql += " WHERE " + " AND ".join(clauses)
        if self.ordering:
            sql += " ORDER BY " + ", ".join(
                f"{column} {'DESC' if descending else 'ASC'}" for column, descending in self.ordering
            )
        if self.limit is not None:
            sql += f" LIMIT {dialect.placeholder}"
            params.append(self.limit)
        return sql, params
