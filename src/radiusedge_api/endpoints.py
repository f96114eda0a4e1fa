from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from radiusedge_api import repositories
from radiusedge_api.codec import ResourceCodec, format_timestamp
from radiusedge_api.config import get_log_level
from radiusedge_api.credentials import hash_password
from radiusedge_api.db import ConflictError, Store
from radiusedge_api.query import SelectQuery
from radiusedge_api.resources import ARRAY, ResourceSpec

logger = logging.getLogger(__name__)
logger.setLevel(get_log_level())


class ValidationError(RuntimeError):
    pass


class NotFoundError(RuntimeError):
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def _required_message(missing: list[str]) -> str:
    if len(missing) == 1:
        return f"{missing[0]} is required"
    return f"{', '.join(missing[:-1])} and {missing[-1]} are required"


def parse_limit(raw: Any) -> int | None:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        limit = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"limit must be a positive integer, got {raw!r}") from None
    if limit < 1:
        raise ValidationError(f"limit must be a positive integer, got {raw!r}")
    return limit


class RecordEndpoints:
    """List, create and fetch records of any ``ResourceSpec`` against one store."""

    def __init__(
        self,
        store: Store,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], Any] = uuid.uuid4,
    ) -> None:
        self.store = store
        self.clock = clock
        self.id_factory = id_factory

    def build_list_query(self, spec: ResourceSpec, params: Mapping[str, Any]) -> SelectQuery:
        query = SelectQuery(spec.table, spec.readable_columns)

        for name, column in spec.filters:
            value = params.get(name)
            if value is None or not str(value).strip():
                continue
            allowed = spec.allowed_values(name)
            if allowed is not None and value not in allowed:
                raise ValidationError(f"{name} must be one of: {', '.join(allowed)}")
            query.where_equals(column, value)

        search = params.get("search")
        if isinstance(search, str) and search.strip() and spec.searchable:
            arrays = {f.column for f in spec.fields if f.nested == ARRAY}
            query.where_contains_any(
                [c for c in spec.searchable if c not in arrays],
                search.strip(),
                array_columns=[c for c in spec.searchable if c in arrays],
            )

        sort_column = spec.sort_column(params.get("sortBy"))
        if sort_column:
            query.order_by(sort_column, descending=True)
        else:
            column, descending = spec.default_order
            query.order_by(column, descending=descending)
        query.order_by("id")

        return query.limit_to(parse_limit(params.get("limit")))

    def list_records(self, spec: ResourceSpec, params: Mapping[str, Any] | None = None) -> list[dict]:
        query = self.build_list_query(spec, params or {})
        codec = ResourceCodec(spec)
        with self.store.cursor() as cursor:
            rows = repositories.select_rows(cursor, self.store.dialect, query)
        # One unreadable row fails the whole listing.
        records = [codec.decode(row) for row in rows]
        logger.info("Listed %d %s", len(records), spec.kind)
        return records

    def get_record(self, spec: ResourceSpec, record_id: str) -> dict:
        with self.store.cursor() as cursor:
            row = repositories.get_row(
                cursor, self.store.dialect, spec.table, spec.readable_columns, record_id
            )
        if row is None:
            raise NotFoundError(f"{spec.label.capitalize()} not found")
        return ResourceCodec(spec).decode(row)

    def _validate(self, spec: ResourceSpec, body: Any) -> None:
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")

        missing = [name for name in spec.required if _is_blank(body.get(name))]
        if missing:
            raise ValidationError(_required_message(missing))

        for name in spec.writable:
            value = body.get(name)
            if value is None:
                continue
            field = spec.field(name)
            if field.nested == ARRAY and not isinstance(value, list):
                raise ValidationError(f"{name} must be an array")
            if not field.nested and not isinstance(value, str):
                raise ValidationError(f"{name} must be a string")
            allowed = spec.allowed_values(name)
            if allowed is not None and value not in allowed:
                raise ValidationError(f"{name} must be one of: {', '.join(allowed)}")

    def create_record(self, spec: ResourceSpec, body: Any) -> dict:
        self._validate(spec, body)

        record: dict[str, Any] = {"id": str(self.id_factory())}
        for name in spec.writable:
            field = spec.field(name)
            value = body.get(name)
            if field.secret:
                record[name] = hash_password(value) if not _is_blank(value) else None
            else:
                record[name] = field.empty() if value is None else value
        for name, value in spec.create_defaults:
            record[name] = value
        if spec.timestamp_field:
            record[spec.timestamp_field] = format_timestamp(self.clock())

        codec = ResourceCodec(spec)
        row = codec.encode(record)
        try:
            with self.store.cursor() as cursor:
                repositories.insert_row(cursor, self.store.dialect, spec.table, row)
        except ConflictError as exc:
            raise ConflictError(spec.conflict_message) from exc

        logger.info("Created %s %s", spec.label, record["id"])
        return codec.decode(row)
