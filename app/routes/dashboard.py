"""
Dashboard routes — lead monitor page, stateless leads API, health check.
"""
import logging
import math
from dataclasses import replace
from flask import Blueprint, jsonify, render_template, request

from app.config import PAGE_SIZE, SORT_DIRECTIONS, SORT_KEYS
from app.extensions import get_lead_client
from app.models.query import LeadQuery
from app.routes.monitor import current_monitor, panel_context, remember
from app.services.leads import LeadFetchError, fetch_leads
from app.services.refine import refine_rows

logger = logging.getLogger('routes.dashboard')

bp = Blueprint('dashboard', __name__)


@bp.route('/')
def index():
    """Lead monitor page. First visit in a session performs the initial fetch."""
    monitor = current_monitor()
    remember(monitor)
    return render_template('monitor.html', **panel_context(monitor))


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    configured = getattr(get_lead_client(), 'configured', False)
    return jsonify({
        'status': 'healthy',
        'data_service': 'configured' if configured else 'unconfigured',
    }), 200


@bp.route('/api/leads')
def list_leads():
    """
    One page of leads as JSON.

    Query args: minScore/min_score, severity, caseType/case_type, status, page,
    plus optional in-page refinement: search, sort (triaged_at|lead_score), dir (asc|desc).
    """
    try:
        query = LeadQuery.from_args(request.args)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    search = request.args.get('search', '')
    sort_key = request.args.get('sort', 'triaged_at')
    sort_dir = request.args.get('dir', 'desc')
    if sort_key not in SORT_KEYS:
        return jsonify({'error': f'sort must be one of {SORT_KEYS}'}), 400
    if sort_dir not in SORT_DIRECTIONS:
        return jsonify({'error': f'dir must be one of {SORT_DIRECTIONS}'}), 400

    try:
        result = fetch_leads(get_lead_client(), query)
    except LeadFetchError as e:
        return jsonify({
            'error': str(e),
            'rows': [],
            'total_count': 0,
            'source': None,
        }), 502
    except Exception as e:
        logger.error("Error fetching leads for %s: %s", query, e, exc_info=True)
        return jsonify({'error': str(e)}), 500

    refined = replace(result, rows=tuple(refine_rows(result.rows, search, sort_key, sort_dir)))
    payload = refined.to_dict()
    payload.update(
        page=query.page,
        page_size=PAGE_SIZE,
        total_pages=max(1, math.ceil(result.total_count / PAGE_SIZE)),
    )
    return jsonify(payload)
