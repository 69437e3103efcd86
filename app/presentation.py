"""
Jinja2 filters for the lead table — timestamps, names, URLs, badge kinds.
"""
from datetime import datetime, timezone
from urllib.parse import urlparse

from app.models.lead import parse_timestamp

MAX_PEOPLE = 4
MAX_URL_CHARS = 60


def fmt_time(value):
    """'YYYY-MM-DD HH:MM' in UTC; naive values are taken as UTC. '' when missing."""
    dt = parse_timestamp(value)
    if dt is None:
        return ''
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M')


def time_since(value):
    """Convert a timestamp to a '2m ago' style string."""
    dt = parse_timestamp(value)
    if dt is None:
        return ''
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    diff = (datetime.now(timezone.utc) - dt).total_seconds()
    if diff < 60:
        return 'just now'
    if diff < 3600:
        return f'{int(diff // 60)}m ago'
    if diff < 86400:
        return f'{int(diff // 3600)}h ago'
    return f'{int(diff // 86400)}d ago'


def fmt_people(people):
    """First four names, then '+N' for the rest."""
    if not people:
        return ''
    people = list(people)
    shown = ', '.join(people[:MAX_PEOPLE])
    extra = len(people) - MAX_PEOPLE
    return f'{shown} +{extra}' if extra > 0 else shown


def _truncate(text):
    return text[:MAX_URL_CHARS] + '…' if len(text) > MAX_URL_CHARS else text


def short_url(url):
    """host + path, truncated to 60 chars."""
    if not url:
        return ''
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return _truncate(url)
    return _truncate(f'{parsed.hostname}{parsed.path}')


def severity_kind(severity):
    return {
        'fatal': 'bad',
        'serious_injury': 'warn',
        'injury': 'good',
    }.get(severity, 'neutral')


def score_kind(score):
    if score is None:
        return 'neutral'
    if score >= 85:
        return 'bad'
    if score >= 70:
        return 'warn'
    if score >= 50:
        return 'good'
    return 'neutral'


FILTERS = {
    'fmt_time': fmt_time,
    'time_since': time_since,
    'fmt_people': fmt_people,
    'short_url': short_url,
    'severity_kind': severity_kind,
    'score_kind': score_kind,
}


def register_filters(app):
    app.jinja_env.filters.update(FILTERS)
