"""
Supabase REST (PostgREST) client — read-only select with filters, ordering,
offset/limit pagination and an exact total count.

Only what the lead monitor needs:

    client.select('v_triage_live', columns, predicates=[Predicate('lead_score', 'gte', 70)],
                  order=Ordering('triaged_at'), offset=0, limit=50)
    → QueryResponse(rows=[{...}, ...], count=120)

NullSupabaseClient stands in when credentials are missing and answers every
query with no data.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

logger = logging.getLogger('services.supabase')

_CONTENT_RANGE_TOTAL = re.compile(r'/(\d+|\*)\s*$')


class SupabaseError(Exception):
    """A single PostgREST query failed (HTTP error or transport failure)."""
    def __init__(self, message, status_code=None, code=None):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


@dataclass(frozen=True)
class Predicate:
    """Horizontal filter, e.g. Predicate('severity', 'eq', 'fatal') → severity=eq.fatal"""
    column: str
    op: str
    value: Any

    def to_param(self):
        value = self.value
        if value is None:
            value = 'null'
        elif isinstance(value, bool):
            value = 'true' if value else 'false'
        return self.column, f'{self.op}.{value}'


@dataclass(frozen=True)
class Ordering:
    column: str
    descending: bool = True
    nulls_last: bool = True

    def to_param(self):
        direction = 'desc' if self.descending else 'asc'
        nulls = 'nullslast' if self.nulls_last else 'nullsfirst'
        return f'{self.column}.{direction}.{nulls}'


@dataclass
class QueryResponse:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    count: int = 0


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from a Content-Range header ('0-49/120', '*/0'). None if unknown."""
    if not header:
        return None
    match = _CONTENT_RANGE_TOTAL.search(header)
    if not match or match.group(1) == '*':
        return None
    return int(match.group(1))


def _error_body(response) -> Optional[Dict[str, Any]]:
    """PostgREST error payload ({code, message, details, hint}) if the body is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _error_message(response) -> str:
    body = _error_body(response)
    if body:
        message = body.get('message') or body.get('error') or body.get('msg')
        if message:
            details = body.get('details')
            return f"{message} ({details})" if details else str(message)
    text = (response.text or '').strip()
    return text[:200] or f"HTTP {response.status_code}"


class SupabaseClient:
    """
    Stateless PostgREST reader. Safe to share across threads: every call
    is a single independent HTTP request.
    """

    configured = True

    def __init__(self, url: str, anon_key: str, timeout: float = 10):
        self.rest_url = f"{url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self._headers = {
            'apikey': anon_key,
            'Authorization': f'Bearer {anon_key}',
            'Accept': 'application/json',
            'Prefer': 'count=exact',
        }

    def build_params(
        self, columns: Sequence[str], predicates: Sequence[Predicate] = (),
        order: Optional[Ordering] = None, offset: int = 0, limit: Optional[int] = None,
    ):
        """Query string as an ordered list of pairs (a column may repeat)."""
        params = [('select', ','.join(columns))]
        params.extend(p.to_param() for p in predicates)
        if order is not None:
            params.append(('order', order.to_param()))
        if offset:
            params.append(('offset', str(offset)))
        if limit is not None:
            params.append(('limit', str(limit)))
        return params

    def select(
        self, resource: str, columns: Sequence[str], predicates: Sequence[Predicate] = (),
        order: Optional[Ordering] = None, offset: int = 0, limit: Optional[int] = None,
    ) -> QueryResponse:
        """Run one GET against /rest/v1/<resource>. Raises SupabaseError on failure."""
        params = self.build_params(columns, predicates, order, offset, limit)
        url = f'{self.rest_url}/{resource}'
        try:
            response = requests.get(url, headers=self._headers, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise SupabaseError(f"{resource}: request failed: {e}") from e

        total = parse_content_range(response.headers.get('Content-Range'))

        # Offset past the end of the result set: empty page, count still known
        if response.status_code == 416:
            logger.debug("%s: range not satisfiable (offset=%s, total=%s)", resource, offset, total)
            return QueryResponse(rows=[], count=total or 0)

        if response.status_code >= 400:
            body = _error_body(response) or {}
            raise SupabaseError(_error_message(response), status_code=response.status_code,
                                code=body.get('code'))

        try:
            rows = response.json()
        except ValueError:
            raise SupabaseError(f"{resource}: response was not JSON", status_code=response.status_code)
        if not isinstance(rows, list):
            raise SupabaseError(f"{resource}: expected a JSON array", status_code=response.status_code)

        return QueryResponse(rows=rows, count=total if total is not None else len(rows))


class NullSupabaseClient:
    """No data service configured: every query is empty, never an error."""

    configured = False

    def select(self, resource, columns, predicates=(), order=None, offset=0, limit=None):
        return QueryResponse(rows=[], count=0)


def build_supabase_client(url: Optional[str], anon_key: Optional[str], timeout: float = 10):
    """Real client when both credentials are set, otherwise the null client."""
    if not url or not anon_key:
        logger.warning("SUPABASE_URL or SUPABASE_ANON_KEY not set; lead monitor will show no data")
        return NullSupabaseClient()
    logger.info("Supabase client initialized for %s", url)
    return SupabaseClient(url, anon_key, timeout=timeout)
