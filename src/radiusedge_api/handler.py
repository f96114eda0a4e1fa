from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Callable

from radiusedge_api.codec import DecodeError
from radiusedge_api.config import get_init_schema, get_log_level
from radiusedge_api.db import ConflictError, get_store
from radiusedge_api.endpoints import NotFoundError, RecordEndpoints, ValidationError
from radiusedge_api.resources import INTERACTIONS, SCENARIOS, USERS, ResourceSpec
from radiusedge_api.schema import ensure_schema

logger = logging.getLogger(__name__)
logger.setLevel(get_log_level())

ROUTES: dict[str, ResourceSpec] = {
    "/api/ai-interactions": INTERACTIONS,
    "/api/scenarios": SCENARIOS,
    "/api/settings/users": USERS,
}

_endpoints: RecordEndpoints | None = None


def _cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "*",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    }


def _response(payload: Any, status: int = 200) -> dict:
    body = "" if payload is None else json.dumps(payload)
    headers = {"Content-Type": "application/json", **_cors_headers()}
    return {"statusCode": status, "headers": headers, "body": body}


def _get_method(event: dict) -> str:
    method = event.get("httpMethod") or ((event.get("requestContext") or {}).get("http") or {}).get("method") or ""
    return method.upper()


def _get_path(event: dict) -> str:
    path = event.get("rawPath") or event.get("path") or ""
    return path.rstrip("/") or "/"


def _get_query_params(event: dict) -> dict[str, Any]:
    return event.get("queryStringParameters") or {}


def _get_body(event: dict) -> str:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ValidationError("Request body is not valid base64-encoded UTF-8") from exc
    return body


def _parse_json_body(event: dict) -> Any:
    raw = _get_body(event).strip()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError(f"Request body is not valid JSON: {exc}") from exc


def _plural(spec: ResourceSpec) -> str:
    return spec.label + "s"


def _default_endpoints() -> RecordEndpoints:
    global _endpoints
    if _endpoints is None:
        store = get_store()
        if get_init_schema():
            ensure_schema(store)
        _endpoints = RecordEndpoints(store)
    return _endpoints


def _handle_collection(event: dict, spec: ResourceSpec, get_endpoints: Callable[[], RecordEndpoints]) -> dict:
    method = _get_method(event)
    if method == "GET":
        failure = f"Failed to fetch {_plural(spec)}"
        try:
            records = get_endpoints().list_records(spec, _get_query_params(event))
            return _response(records, status=200)
        except ValidationError as exc:
            logger.warning("Rejected %s list: %s", spec.kind, exc)
            return _response({"message": str(exc)}, status=400)
        except DecodeError as exc:
            logger.exception("Stored %s could not be decoded", spec.label)
            return _response({"message": failure, "error": str(exc)}, status=500)
        except Exception as exc:
            logger.exception("%s list failed", spec.label)
            return _response({"message": failure, "error": str(exc)}, status=500)

    if method == "POST":
        failure = f"Failed to create {spec.label}"
        try:
            body = _parse_json_body(event)
            created = get_endpoints().create_record(spec, body)
            return _response(created, status=201)
        except ValidationError as exc:
            logger.warning("Rejected %s create: %s", spec.kind, exc)
            return _response({"message": str(exc)}, status=400)
        except ConflictError as exc:
            logger.warning("Conflict on %s create: %s", spec.kind, exc)
            return _response({"message": str(exc)}, status=409)
        except Exception as exc:
            logger.exception("%s create failed", spec.label)
            return _response({"message": failure, "error": str(exc)}, status=500)

    return _response({"message": "method not allowed"}, status=405)


def _handle_item(event: dict, spec: ResourceSpec, record_id: str, get_endpoints: Callable[[], RecordEndpoints]) -> dict:
    if _get_method(event) != "GET":
        return _response({"message": "method not allowed"}, status=405)
    try:
        return _response(get_endpoints().get_record(spec, record_id), status=200)
    except NotFoundError as exc:
        return _response({"message": str(exc)}, status=404)
    except Exception as exc:
        logger.exception("%s fetch failed: %s", spec.label, record_id)
        return _response({"message": f"Failed to fetch {spec.label} {record_id}", "error": str(exc)}, status=500)


def dispatch(event: dict, get_endpoints: Callable[[], RecordEndpoints]) -> dict:
    method = _get_method(event)
    path = _get_path(event)

    if method == "OPTIONS":
        return _response(None, status=204)

    if path == "/api/ping":
        return _response({"ok": True})

    spec = ROUTES.get(path)
    if spec is not None:
        return _handle_collection(event, spec, get_endpoints)

    for prefix, spec in ROUTES.items():
        if path.startswith(prefix + "/"):
            rest = path[len(prefix) + 1 :]
            if rest and "/" not in rest:
                return _handle_item(event, spec, rest, get_endpoints)

    return _response({"message": "not found"}, status=404)


def lambda_handler(event: dict, context: Any) -> dict:
    return dispatch(event, _default_endpoints)
