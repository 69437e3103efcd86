"""
Lead monitor state — one per browser session.

Owns everything the dashboard shows: filters, page, fetched rows, in-page
search/sort and the auto-refresh flag. Every fetch goes through load(), which
tags the request with an increasing token; a response is applied only if no
newer request was issued meanwhile, so an overlapping timer tick and manual
refresh can't roll the table back to older data.

Optional page features (status filter, expandable rows, debounced search) are
switched by MonitorFeatures instead of separate page variants.
"""
import logging
import math
import threading
from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from app.config import (
    ALL, DEFAULT_MIN_SCORE, MAX_MONITORS, MONITOR_DEBOUNCED_SEARCH,
    MONITOR_ROW_EXPANSION, MONITOR_STATUS_FILTER, PAGE_SIZE,
    SORT_DIRECTIONS, SORT_KEYS,
)
from app.models.query import LeadQuery
from app.services.leads import LeadFetchError, fetch_leads
from app.services.refine import refine_rows

logger = logging.getLogger('services.monitor')

FILTER_FIELDS = ('min_score', 'severity', 'case_type', 'status')


@dataclass(frozen=True)
class MonitorFeatures:
    status_filter: bool = True
    row_expansion: bool = True
    debounced_search: bool = True

    @classmethod
    def from_config(cls):
        return cls(
            status_filter=MONITOR_STATUS_FILTER,
            row_expansion=MONITOR_ROW_EXPANSION,
            debounced_search=MONITOR_DEBOUNCED_SEARCH,
        )


class LeadMonitor:
    """Presentation state for one viewer of the lead table."""

    def __init__(self, client, features=None, min_score=DEFAULT_MIN_SCORE, fetch=fetch_leads):
        self._client = client
        self._fetch = fetch
        self._lock = threading.RLock()
        self._latest_token = 0
        self.features = features or MonitorFeatures()

        self.query = LeadQuery(min_score=min_score)
        self.rows = ()
        self.total_count = 0
        self.source = None
        self.resource = None
        self.error = None
        self.loaded = False
        self.last_loaded_at = None

        self.search = ''
        self.sort_key = 'triaged_at'
        self.sort_dir = 'desc'
        self.auto_refresh = True

    # ── Fetching ──────────────────────────────────────────────────────

    def load(self):
        """
        Fetch the current page. Returns True if the response was applied,
        False if a newer request superseded it.
        """
        with self._lock:
            self._latest_token += 1
            token = self._latest_token
            query = self.query

        try:
            result = self._fetch(self._client, query)
        except LeadFetchError as e:
            with self._lock:
                if token != self._latest_token:
                    logger.debug("Discarding stale error for %s (token %d < %d)", query, token, self._latest_token)
                    return False
                self.rows = ()
                self.total_count = 0
                self.source = None
                self.resource = None
                self.error = str(e)
                self.loaded = True
                self.last_loaded_at = datetime.now(timezone.utc)
            logger.error("Lead fetch failed: %s", e)
            return True

        with self._lock:
            if token != self._latest_token:
                logger.debug("Discarding stale result for %s (token %d < %d)", query, token, self._latest_token)
                return False
            self.rows = result.rows
            self.total_count = result.total_count
            self.source = result.source
            self.resource = result.resource
            self.error = None
            self.loaded = True
            self.last_loaded_at = datetime.now(timezone.utc)
            # Filters shrank the result set below the current page
            out_of_range = self.query.page > self.total_pages
            if out_of_range:
                self.query = self.query.with_page(1)

        if out_of_range:
            logger.info("Page %d beyond %d total pages, back to page 1", query.page, self.total_pages)
            return self.load()
        return True

    def ensure_loaded(self):
        """Mount: fetch once if this monitor has never loaded."""
        if not self.loaded:
            self.load()

    def refresh(self):
        return self.load()

    # ── Filters & pagination ──────────────────────────────────────────

    def set_filters(self, **changes):
        """Apply filter changes; any change resets to page 1 before fetching."""
        unknown = set(changes) - set(FILTER_FIELDS)
        if unknown:
            raise ValueError(f"Unknown filter(s): {sorted(unknown)}")
        if not self.features.status_filter:
            changes['status'] = ALL

        with self._lock:
            candidate = replace(self.query, **changes)
            if candidate.filters() != self.query.filters():
                self.query = candidate.with_page(1)
        return self.load()

    def go_to_page(self, page):
        try:
            page = int(page)
        except (TypeError, ValueError):
            raise ValueError(f"page must be an integer, got {page!r}")
        with self._lock:
            page = max(1, min(self.total_pages, page))
            self.query = self.query.with_page(page)
        return self.load()

    def next_page(self):
        return self.go_to_page(self.query.page + 1)

    def prev_page(self):
        return self.go_to_page(self.query.page - 1)

    @property
    def page(self):
        return self.query.page

    @property
    def total_pages(self):
        return max(1, math.ceil(self.total_count / PAGE_SIZE))

    @property
    def from_shown(self):
        return 0 if self.total_count == 0 else (self.query.page - 1) * PAGE_SIZE + 1

    @property
    def to_shown(self):
        return min(self.query.page * PAGE_SIZE, self.total_count)

    # ── In-page refinement (no fetch) ─────────────────────────────────

    def set_search(self, text):
        self.search = text or ''

    def set_sort(self, key, direction=None):
        if key not in SORT_KEYS:
            raise ValueError(f"sort key must be one of {SORT_KEYS}, got {key!r}")
        if direction is not None and direction not in SORT_DIRECTIONS:
            raise ValueError(f"sort direction must be one of {SORT_DIRECTIONS}, got {direction!r}")
        with self._lock:
            self.sort_key = key
            if direction is not None:
                self.sort_dir = direction

    def toggle_score_sort(self):
        """First click sorts by score descending; later clicks flip direction."""
        with self._lock:
            if self.sort_key != 'lead_score':
                self.sort_key = 'lead_score'
                self.sort_dir = 'desc'
            else:
                self.sort_dir = 'asc' if self.sort_dir == 'desc' else 'desc'

    @property
    def visible_rows(self):
        with self._lock:
            rows, search, key, direction = self.rows, self.search, self.sort_key, self.sort_dir
        return refine_rows(rows, search, key, direction)

    # ── Auto-refresh ──────────────────────────────────────────────────

    def set_auto_refresh(self, enabled):
        self.auto_refresh = bool(enabled)

    # ── Persistence ───────────────────────────────────────────────────

    def snapshot(self):
        """The viewer's choices as a JSON-friendly dict (stored in the session cookie)."""
        with self._lock:
            state = self.query.filters()
            state.update(
                page=self.query.page,
                search=self.search,
                sort_key=self.sort_key,
                sort_dir=self.sort_dir,
                auto_refresh=self.auto_refresh,
            )
        return state

    def restore(self, state):
        """
        Re-apply a snapshot() to a monitor that has not loaded yet, so a
        restarted worker or an evicted monitor picks up where the viewer was.
        Does not fetch. Raises ValueError if the snapshot is invalid.
        """
        filters = {name: state[name] for name in FILTER_FIELDS if name in state}
        if not self.features.status_filter:
            filters['status'] = ALL
        query = LeadQuery(page=state.get('page', 1), **filters)
        sort_key = state.get('sort_key', 'triaged_at')
        sort_dir = state.get('sort_dir', 'desc')
        if sort_key not in SORT_KEYS or sort_dir not in SORT_DIRECTIONS:
            raise ValueError(f"invalid sort in saved state: {sort_key!r} {sort_dir!r}")

        with self._lock:
            self.query = query
            self.search = state.get('search') or ''
            self.sort_key = sort_key
            self.sort_dir = sort_dir
            self.auto_refresh = bool(state.get('auto_refresh', True))


class MonitorRegistry:
    """
    Session id → LeadMonitor. Bounded; the least recently used monitor is
    dropped once max_size is exceeded.
    """

    def __init__(self, factory, max_size=MAX_MONITORS):
        self._factory = factory
        self._max_size = max_size
        self._monitors = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key):
        with self._lock:
            monitor = self._monitors.get(key)
            if monitor is None:
                monitor = self._factory()
                self._monitors[key] = monitor
                while len(self._monitors) > self._max_size:
                    evicted, _ = self._monitors.popitem(last=False)
                    logger.debug("Evicted monitor for session %s", evicted)
            else:
                self._monitors.move_to_end(key)
            return monitor

    def __len__(self):
        return len(self._monitors)

    def __contains__(self, key):
        return key in self._monitors
