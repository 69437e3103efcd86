"""
In-page search and sort — pure functions over the rows already fetched.

Never touches the data service: these only reorder or subset the current page.
"""
from app.config import SORT_DIRECTIONS, SORT_KEYS

_MISSING = float('-inf')


def haystack(lead):
    """Lowercased text searched by the page filter."""
    parts = [
        lead.title or '',
        lead.publisher_domain or '',
        ' '.join(lead.triage_reasons),
        ' '.join(lead.people),
    ]
    if lead.status:
        parts.append(lead.status)
    return ' '.join(parts).lower()


def search_rows(rows, search):
    """Rows whose haystack contains the search text. Blank search keeps all rows in order."""
    needle = (search or '').strip().lower()
    if not needle:
        return list(rows)
    return [lead for lead in rows if needle in haystack(lead)]


def _sort_value(lead, key):
    if key == 'lead_score':
        return lead.lead_score if lead.lead_score is not None else _MISSING
    return lead.triaged_at.timestamp() if lead.triaged_at else _MISSING


def sort_rows(rows, key='triaged_at', direction='desc'):
    """Stable sort by lead_score or triaged_at; missing values rank as -infinity."""
    if key not in SORT_KEYS:
        raise ValueError(f"sort key must be one of {SORT_KEYS}, got {key!r}")
    if direction not in SORT_DIRECTIONS:
        raise ValueError(f"sort direction must be one of {SORT_DIRECTIONS}, got {direction!r}")
    return sorted(rows, key=lambda lead: _sort_value(lead, key), reverse=direction == 'desc')


def refine_rows(rows, search='', key='triaged_at', direction='desc'):
    return sort_rows(search_rows(rows, search), key, direction)
