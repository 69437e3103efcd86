"""
Lead query parameters and fetch results.

LeadQuery is the caller-owned filter + page request; FetchResult is the
uniform answer regardless of which backing source served it.
"""
import math
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Tuple

from app.config import ALL, CASE_TYPES, PAGE_SIZE, SEVERITIES, STATUSES
from app.models.lead import Lead

SOURCE_PRIMARY = 'primary-view'
SOURCE_FALLBACK = 'fallback-table'

SELECTORS = {
    'severity': SEVERITIES,
    'case_type': CASE_TYPES,
    'status': STATUSES,
}

# Request argument aliases → LeadQuery field
_ARG_ALIASES = {
    'minScore': 'min_score',
    'min_score': 'min_score',
    'severity': 'severity',
    'caseType': 'case_type',
    'case_type': 'case_type',
    'status': 'status',
    'page': 'page',
}


def parse_min_score(value):
    """Coerce a score threshold. Blank means no filter (0)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    if isinstance(value, bool):
        raise ValueError(f"min_score must be a number, got {value!r}")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"min_score must be a number, got {value!r}")
    if not math.isfinite(score) or score < 0:
        raise ValueError(f"min_score must be a non-negative number, got {value!r}")
    return int(score) if score.is_integer() else score


def parse_page(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return 1
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValueError(f"page must be an integer, got {value!r}")
    try:
        page = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"page must be an integer, got {value!r}")
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    return page


def parse_selector(name, value):
    """Validate an enum selector: 'all' or one of the known values."""
    if value is None or value == '':
        return ALL
    value = str(value).strip()
    if value != ALL and value not in SELECTORS[name]:
        raise ValueError(f"{name} must be '{ALL}' or one of {SELECTORS[name]}, got {value!r}")
    return value


@dataclass(frozen=True)
class LeadQuery:
    """One page request: filters + 1-based page number."""
    min_score: float = 0
    severity: str = ALL
    case_type: str = ALL
    status: str = ALL
    page: int = 1

    def __post_init__(self):
        object.__setattr__(self, 'min_score', parse_min_score(self.min_score))
        object.__setattr__(self, 'page', parse_page(self.page))
        for name in SELECTORS:
            object.__setattr__(self, name, parse_selector(name, getattr(self, name)))

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> 'LeadQuery':
        """Build from request args / form data (camelCase or snake_case keys)."""
        values = {}
        for key, target in _ARG_ALIASES.items():
            if key in args and target not in values:
                values[target] = args.get(key)
        return cls(**values)

    @property
    def offset(self) -> int:
        return (self.page - 1) * PAGE_SIZE

    @property
    def limit(self) -> int:
        return PAGE_SIZE

    def with_page(self, page: int) -> 'LeadQuery':
        return replace(self, page=page)

    def filters(self):
        return {
            'min_score': self.min_score,
            'severity': self.severity,
            'case_type': self.case_type,
            'status': self.status,
        }


@dataclass(frozen=True)
class FetchResult:
    rows: Tuple[Lead, ...] = field(default_factory=tuple)
    total_count: int = 0
    source: str = SOURCE_PRIMARY
    resource: str = ''

    def to_dict(self):
        return {
            'rows': [lead.to_dict() for lead in self.rows],
            'total_count': self.total_count,
            'source': self.source,
            'resource': self.resource,
        }
