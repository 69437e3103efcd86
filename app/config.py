"""
Centralized configuration — env vars, data service settings, enum constants.
"""
import os


def _flag(name, default='true'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


# LOG_LEVEL / LOG_FORMAT are read by app.logging_config at app creation

# ── Flask ────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
PORT = int(os.getenv('PORT', 8080))

# ── Supabase (PostgREST) ─────────────────────────────────────────────────────
SUPABASE_URL = os.getenv('SUPABASE_URL')
SUPABASE_ANON_KEY = os.getenv('SUPABASE_ANON_KEY')
SUPABASE_TIMEOUT = float(os.getenv('SUPABASE_TIMEOUT', 10))

LEADS_VIEW = os.getenv('LEADS_VIEW', 'v_triage_live')
LEADS_TABLE = os.getenv('LEADS_TABLE', 'articles')

SELECT_COLUMNS = [
    'id',
    'url',
    'title',
    'publisher_domain',
    'people',
    'severity',
    'case_type',
    'lead_score',
    'triage_reasons',
    'triaged_at',
    'ingested_at',
    'status',
]

# ── Monitor ──────────────────────────────────────────────────────────────────
PAGE_SIZE = 50
AUTO_REFRESH_SECONDS = int(os.getenv('AUTO_REFRESH_SECONDS', 15))
DEFAULT_MIN_SCORE = float(os.getenv('DEFAULT_MIN_SCORE', 70))
MAX_MONITORS = 256  # per-process session monitors kept in memory

MONITOR_STATUS_FILTER = _flag('MONITOR_STATUS_FILTER')
MONITOR_ROW_EXPANSION = _flag('MONITOR_ROW_EXPANSION')
MONITOR_DEBOUNCED_SEARCH = _flag('MONITOR_DEBOUNCED_SEARCH')

# ── Lead enums ───────────────────────────────────────────────────────────────
ALL = 'all'

SEVERITIES = [
    'fatal',
    'serious_injury',
    'injury',
    'unknown',
]

CASE_TYPES = [
    'truck',
    'pedestrian',
    'auto',
    'motorcycle',
    'unknown',
]

STATUSES = [
    'new',
    'reviewing',
    'contacted',
    'done',
    'closed',
    'ignore',
]

SORT_KEYS = ['triaged_at', 'lead_score']
SORT_DIRECTIONS = ['asc', 'desc']
