"""
Lead fetcher — one page of leads + total count, view first, table fallback.

The primary view only contains triaged rows. If querying it fails (view
missing, misconfigured, permission error), the same filters are applied to the
base table with an extra "triaged_at is not null" predicate. That predicate
approximates the view definition; any other business rule baked into the view
is not reproduced.
"""
import logging
from typing import List

from app.config import ALL, LEADS_TABLE, LEADS_VIEW, SELECT_COLUMNS
from app.models.lead import Lead
from app.models.query import SOURCE_FALLBACK, SOURCE_PRIMARY, FetchResult, LeadQuery
from app.services.supabase import Ordering, Predicate, SupabaseError

logger = logging.getLogger('services.leads')

TRIAGE_ORDER = Ordering('triaged_at', descending=True, nulls_last=True)
TRIAGED_ONLY = Predicate('triaged_at', 'not.is', None)


class LeadFetchError(Exception):
    """Both the view and the table query failed."""
    def __init__(self, primary_error, fallback_error):
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        super().__init__(f"View error: {primary_error} | Table error: {fallback_error}")


def build_predicates(query: LeadQuery) -> List[Predicate]:
    """Filter predicates for a query; 'all' and a zero score add nothing."""
    predicates = []
    if query.min_score > 0:
        predicates.append(Predicate('lead_score', 'gte', query.min_score))
    for column in ('severity', 'case_type', 'status'):
        value = getattr(query, column)
        if value != ALL:
            predicates.append(Predicate(column, 'eq', value))
    return predicates


def _select(client, resource, predicates, query):
    return client.select(
        resource,
        SELECT_COLUMNS,
        predicates=predicates,
        order=TRIAGE_ORDER,
        offset=query.offset,
        limit=query.limit,
    )


def _to_result(response, source, resource):
    rows = tuple(Lead.from_row(row) for row in response.rows or [])
    logger.debug("Fetched %d of %d rows from %s", len(rows), response.count or 0, resource,
                 extra={'resource': resource, 'source': source})
    return FetchResult(rows=rows, total_count=response.count or 0, source=source, resource=resource)


def fetch_leads(client, query: LeadQuery, view: str = LEADS_VIEW, table: str = LEADS_TABLE) -> FetchResult:
    """
    Fetch one page of leads.

    Returns a FetchResult tagged 'primary-view' or 'fallback-table'.
    An empty primary page is a success, not a reason to fall back.
    Raises LeadFetchError when both queries fail.
    """
    predicates = build_predicates(query)

    try:
        response = _select(client, view, predicates, query)
        return _to_result(response, SOURCE_PRIMARY, view)
    except SupabaseError as primary_error:
        logger.warning("View %s query failed, falling back to %s: %s", view, table, primary_error,
                       extra={'resource': view, 'page': query.page})
        try:
            response = _select(client, table, predicates + [TRIAGED_ONLY], query)
        except SupabaseError as fallback_error:
            logger.error("Fallback table %s query failed: %s", table, fallback_error,
                         extra={'resource': table, 'page': query.page})
            raise LeadFetchError(primary_error, fallback_error) from fallback_error

    return _to_result(response, SOURCE_FALLBACK, table)
