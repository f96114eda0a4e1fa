"""Shared fixtures: a SQLite-file store per test and a deterministic clock."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from radiusedge_api.db import store_from_url
from radiusedge_api.endpoints import RecordEndpoints
from radiusedge_api.schema import ensure_schema

START = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class TickingClock:
    """Returns START, START+1s, START+2s, ... on successive calls."""

    def __init__(self, start=START, step=timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current += self.step
        return value


def make_event(method, path, query=None, body=None, raw_body=None):
    if raw_body is None and body is not None:
        raw_body = json.dumps(body)
    return {
        "httpMethod": method,
        "path": path,
        "queryStringParameters": query,
        "headers": {"Content-Type": "application/json"},
        "body": raw_body,
        "isBase64Encoded": False,
    }


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'radiusedge.db'}"


@pytest.fixture
def store(database_url):
    store = store_from_url(database_url)
    ensure_schema(store)
    return store


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def endpoints(store, clock):
    return RecordEndpoints(store, clock=clock)
