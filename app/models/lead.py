"""
Lead model — read-only snapshot of one triaged article row.

Rows come from the data service as plain dicts; Lead.from_row() normalizes
them (ISO timestamps → datetime, null arrays → empty tuples).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger('models.lead')


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a PostgREST timestamp string. Returns None if absent or malformed."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        logger.warning("Unparseable timestamp %r, treating as missing", value)
        return None


def _as_tuple(value) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value if item is not None)


@dataclass(frozen=True)
class Lead:
    id: str
    url: Optional[str] = None
    title: Optional[str] = None
    publisher_domain: Optional[str] = None
    people: Tuple[str, ...] = field(default_factory=tuple)
    severity: Optional[str] = None
    case_type: Optional[str] = None
    lead_score: Optional[float] = None
    triage_reasons: Tuple[str, ...] = field(default_factory=tuple)
    triaged_at: Optional[datetime] = None
    ingested_at: Optional[datetime] = None
    status: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Lead':
        return cls(
            id=str(row['id']),
            url=row.get('url'),
            title=row.get('title'),
            publisher_domain=row.get('publisher_domain'),
            people=_as_tuple(row.get('people')),
            severity=row.get('severity'),
            case_type=row.get('case_type'),
            lead_score=row.get('lead_score'),
            triage_reasons=_as_tuple(row.get('triage_reasons')),
            triaged_at=parse_timestamp(row.get('triaged_at')),
            ingested_at=parse_timestamp(row.get('ingested_at')),
            status=row.get('status'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'url': self.url,
            'title': self.title,
            'publisher_domain': self.publisher_domain,
            'people': list(self.people),
            'severity': self.severity,
            'case_type': self.case_type,
            'lead_score': self.lead_score,
            'triage_reasons': list(self.triage_reasons),
            'triaged_at': self.triaged_at.isoformat() if self.triaged_at else None,
            'ingested_at': self.ingested_at.isoformat() if self.ingested_at else None,
            'status': self.status,
        }
