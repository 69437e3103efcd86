"""
Monitor routes — HTMX partials for every lead table action.

Each browser session owns a LeadMonitor. Filter, page and refresh actions
fetch; search and sort only re-render the rows already held.

The monitor lives in process memory, so the viewer's choices are also kept in
the signed session cookie. A monitor that has never loaded (new worker,
restart, eviction) is rebuilt from that copy and fetches before any action
is applied to it.
"""
import logging
import uuid
from flask import Blueprint, render_template, request, session

from app.config import (
    ALL, AUTO_REFRESH_SECONDS, CASE_TYPES, PAGE_SIZE, SEVERITIES, STATUSES,
)
from app.extensions import get_monitors
from app.services.monitor import FILTER_FIELDS

logger = logging.getLogger('routes.monitor')

bp = Blueprint('monitor', __name__)

_TRUTHY = ('1', 'true', 'on', 'yes')

STATE_KEY = 'monitor_state'


def current_monitor():
    """The loaded LeadMonitor bound to this browser session (created on first use)."""
    monitor_id = session.get('monitor_id')
    if not monitor_id:
        monitor_id = uuid.uuid4().hex
        session['monitor_id'] = monitor_id
    monitor = get_monitors().get(monitor_id)

    if not monitor.loaded:
        state = session.get(STATE_KEY)
        if isinstance(state, dict):
            try:
                monitor.restore(state)
                logger.info("Restored monitor state from session", extra={'monitor_id': monitor_id})
            except (TypeError, ValueError) as e:
                logger.warning("Discarding saved monitor state: %s", e, extra={'monitor_id': monitor_id})
                session.pop(STATE_KEY, None)
        monitor.ensure_loaded()
    return monitor


def remember(monitor):
    session[STATE_KEY] = monitor.snapshot()


def panel_context(monitor, input_error=None):
    return dict(
        monitor=monitor,
        features=monitor.features,
        rows=monitor.visible_rows,
        severities=[ALL] + SEVERITIES,
        case_types=[ALL] + CASE_TYPES,
        statuses=[ALL] + STATUSES,
        page_size=PAGE_SIZE,
        refresh_seconds=AUTO_REFRESH_SECONDS,
        input_error=input_error,
    )


def _render_panel(monitor):
    remember(monitor)
    return render_template('partials/lead_panel.html', **panel_context(monitor))


def _bad_request(monitor, error):
    """Unchanged panel plus the validation message, as a 400 the page still swaps in."""
    logger.info("Rejected monitor input: %s", error, extra={'monitor_id': session.get('monitor_id')})
    return render_template('partials/lead_panel.html', **panel_context(monitor, input_error=str(error))), 400


@bp.route('/partials/leads')
def leads_partial():
    """Re-render the lead panel; applies search/sort args. Never fetches beyond the first load."""
    monitor = current_monitor()
    try:
        if 'search' in request.args:
            monitor.set_search(request.args.get('search', ''))
        if 'sort' in request.args:
            monitor.set_sort(request.args['sort'], request.args.get('dir') or None)
    except ValueError as e:
        return _bad_request(monitor, e)
    return _render_panel(monitor)


@bp.route('/partials/leads/filters', methods=['POST'])
def filters_partial():
    """Filter change: resets to page 1 and fetches."""
    monitor = current_monitor()
    changes = {name: request.form[name] for name in FILTER_FIELDS if name in request.form}
    try:
        monitor.set_filters(**changes)
    except ValueError as e:
        return _bad_request(monitor, e)
    return _render_panel(monitor)


@bp.route('/partials/leads/page', methods=['POST'])
def page_partial():
    """Page navigation: explicit page number, or direction=next|prev."""
    monitor = current_monitor()
    direction = request.form.get('direction')
    try:
        if direction == 'next':
            monitor.next_page()
        elif direction == 'prev':
            monitor.prev_page()
        elif direction:
            raise ValueError(f"direction must be 'next' or 'prev', got {direction!r}")
        else:
            page = request.form.get('page', '').strip()
            monitor.go_to_page(page or 1)
    except ValueError as e:
        return _bad_request(monitor, e)
    return _render_panel(monitor)


@bp.route('/partials/leads/refresh', methods=['POST'])
def refresh_partial():
    """Manual refresh button and the auto-refresh polling trigger."""
    monitor = current_monitor()
    monitor.refresh()
    return _render_panel(monitor)


@bp.route('/partials/leads/auto-refresh', methods=['POST'])
def auto_refresh_partial():
    """Set auto-refresh from enabled=on|off, or toggle when omitted."""
    monitor = current_monitor()
    enabled = request.form.get('enabled')
    if enabled is None:
        monitor.set_auto_refresh(not monitor.auto_refresh)
    else:
        monitor.set_auto_refresh(enabled.strip().lower() in _TRUTHY)
    return _render_panel(monitor)


@bp.route('/partials/leads/sort-score', methods=['POST'])
def sort_score_partial():
    monitor = current_monitor()
    monitor.toggle_score_sort()
    return _render_panel(monitor)
