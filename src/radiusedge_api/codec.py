from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping

from dateutil import parser as date_parser

from radiusedge_api.resources import ARRAY, FieldSpec, ResourceSpec


class DecodeError(RuntimeError):
    pass


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_timestamp(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return format_timestamp(value)
    return format_timestamp(date_parser.isoparse(str(value)))


class ResourceCodec:
    """Maps stored rows of one resource to API records and back.

    Nested fields live in TEXT columns as JSON. A NULL or empty column decodes
    to the field's empty value; text that is not JSON is a ``DecodeError``.
    Secret columns never appear in a decoded record.
    """

    def __init__(self, spec: ResourceSpec) -> None:
        self.spec = spec

    def _fail(self, row: Mapping[str, Any], field: FieldSpec, reason: str) -> DecodeError:
        record_id = row.get("id")
        return DecodeError(f"Unreadable {self.spec.label} {record_id}: field {field.name!r} {reason}")

    def decode(self, row: Mapping[str, Any]) -> dict[str, Any]:
        record: dict[str, Any] = {}
        for field in self.spec.fields:
            if field.secret:
                continue
            value = row.get(field.column)
            if field.nested:
                value = self._decode_nested(row, field, value)
            elif field.timestamp:
                try:
                    value = normalize_timestamp(value)
                except (ValueError, OverflowError) as exc:
                    raise self._fail(row, field, f"is not a timestamp: {exc}") from exc
            record[field.name] = value
        return record

    def _decode_nested(self, row: Mapping[str, Any], field: FieldSpec, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return field.empty()
        if not isinstance(value, str):
            # Drivers with native JSON columns hand back parsed values.
            return value
        try:
            decoded = json.loads(value)
        except ValueError as exc:
            raise self._fail(row, field, f"is not valid JSON: {exc}") from exc
        if field.nested == ARRAY and not isinstance(decoded, list):
            raise self._fail(row, field, "is not a JSON array")
        return decoded

    def encode(self, record: Mapping[str, Any]) -> dict[str, Any]:
        row: dict[str, Any] = {}
        for field in self.spec.fields:
            if field.name not in record:
                continue
            value = record[field.name]
            if field.nested:
                value = json.dumps(value, ensure_ascii=False)
            row[field.column] = value
        return row
