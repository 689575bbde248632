"""
Cached Analysis Entries

TechnicalAnalysis is what the cache stores per domain: one immutable entry
per computation, ordered by computed_at.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TechnicalAnalysis:
    """Result of one technical SEO analysis of a page."""

    domain: str
    audit_id: str
    url: str
    scores: Dict[str, int]
    overall_score: int
    overall_grade: str
    issues: List[Dict[str, Any]] = field(default_factory=list)
    computed_at: Optional[datetime] = None

    @property
    def timestamp(self) -> float:
        """Sort key: computed_at as epoch seconds (naive UTC)."""
        return epoch_seconds(self.computed_at)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["computed_at"] = self.computed_at.isoformat() if self.computed_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TechnicalAnalysis":
        computed_at = data.get("computed_at")
        return cls(
            domain=data["domain"],
            audit_id=data.get("audit_id", ""),
            url=data.get("url", ""),
            scores={k: int(v) for k, v in (data.get("scores") or {}).items()},
            overall_score=int(data["overall_score"]),
            overall_grade=data["overall_grade"],
            issues=list(data.get("issues") or []),
            computed_at=datetime.fromisoformat(computed_at) if computed_at else None,
        )


_EPOCH = datetime(1970, 1, 1)


def epoch_seconds(moment: datetime) -> float:
    return (moment - _EPOCH).total_seconds()


def serialize_analysis(analysis: TechnicalAnalysis) -> bytes:
    """Serialize an entry to bytes for storage."""
    return json.dumps(analysis.to_dict(), ensure_ascii=False, sort_keys=True).encode("utf-8")


def deserialize_analysis(data: bytes) -> TechnicalAnalysis:
    """Deserialize bytes back to an entry."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return TechnicalAnalysis.from_dict(json.loads(data))
