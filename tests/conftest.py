"""Shared test fixtures."""
from datetime import datetime, timedelta, timezone

import pytest

from app.services.monitor import MonitorFeatures
from app.services.supabase import QueryResponse, SupabaseError

BASE_TIME = datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)


class FakeLeadClient:
    """
    In-memory stand-in for the Supabase REST client.

    tables maps a resource name to its rows; a resource listed in errors (or
    missing from tables) fails the way a missing PostgREST relation does.
    Supports the predicate operators the fetcher emits: eq, gte, not.is.
    """

    configured = True

    def __init__(self, tables=None, errors=None):
        self.tables = tables or {}
        self.errors = errors or {}
        self.calls = []

    def select(self, resource, columns, predicates=(), order=None, offset=0, limit=None):
        self.calls.append(dict(
            resource=resource,
            columns=list(columns),
            predicates=list(predicates),
            order=order,
            offset=offset,
            limit=limit,
        ))
        if resource in self.errors:
            raise SupabaseError(self.errors[resource])
        if resource not in self.tables:
            raise SupabaseError(f'relation "public.{resource}" does not exist', status_code=404)

        rows = [row for row in self.tables[resource] if all(_matches(row, p) for p in predicates)]
        if order is not None:
            present = [row for row in rows if row.get(order.column) is not None]
            missing = [row for row in rows if row.get(order.column) is None]
            present.sort(key=lambda row: row[order.column], reverse=order.descending)
            rows = present + missing if order.nulls_last else missing + present

        end = offset + limit if limit is not None else None
        return QueryResponse(rows=rows[offset:end], count=len(rows))


def _matches(row, predicate):
    value = row.get(predicate.column)
    if predicate.op == 'eq':
        return value == predicate.value
    if predicate.op == 'gte':
        return value is not None and value >= predicate.value
    if predicate.op == 'not.is':
        return value is not None
    raise AssertionError(f"FakeLeadClient: unsupported operator {predicate.op}")


@pytest.fixture
def make_row():
    """Factory fixture — raw service row dicts; n controls id and triage time."""
    def _make(n=1, **overrides):
        stamp = (BASE_TIME + timedelta(minutes=n)).isoformat()
        defaults = dict(
            id=f'lead-{n:04d}',
            url=f'https://news.example.com/story/{n}',
            title=f'Crash report {n}',
            publisher_domain='news.example.com',
            people=['Jane Doe'],
            severity='fatal',
            case_type='truck',
            lead_score=80,
            triage_reasons=['Fatal collision', 'Commercial vehicle involved'],
            triaged_at=stamp,
            ingested_at=stamp,
            status='new',
        )
        defaults.update(overrides)
        return defaults
    return _make


@pytest.fixture
def fake_client():
    return FakeLeadClient()


@pytest.fixture
def failing_client():
    """Both the view and the table are unavailable."""
    return FakeLeadClient(errors={
        'v_triage_live': 'relation "public.v_triage_live" does not exist',
        'articles': 'permission denied for table articles',
    })


@pytest.fixture
def features():
    return MonitorFeatures(status_filter=True, row_expansion=True, debounced_search=True)


@pytest.fixture
def app(fake_client, features):
    """Flask test app wired to the in-memory lead client."""
    from app import create_app
    app = create_app(lead_client=fake_client, features=features)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client (keeps the session cookie between requests)."""
    with app.test_client() as c:
        yield c
