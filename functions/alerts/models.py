"""
Fire report alert data models
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Report:
    """A validated fire report, read once when the report document is created."""
    latitude: float
    longitude: float
    radius_meters: float
    reporter_uid: Optional[str] = None
    description: Optional[str] = None

    @property
    def center(self):
        return (self.latitude, self.longitude)


@dataclass
class CandidateRecord:
    """Raw record returned by the presence index or synthesized by the user registry scan."""
    doc_id: str
    data: Dict[str, Any]


@dataclass
class Candidate:
    """A candidate that passed validation, with its exact distance to the report."""
    uid: str
    latitude: float
    longitude: float
    fcm_token: str
    distance_meters: float


@dataclass
class CollectedCandidates:
    records: List[CandidateRecord]
    used_fallback: bool = False


@dataclass
class RecipientSet:
    """Ordered unique push tokens, one per distinct uid."""
    tokens: List[str] = field(default_factory=list)
    uids: List[str] = field(default_factory=list)
    # Discard counts keyed by reason: invalid, reporter, out_of_range, duplicate
    discarded: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.tokens)


@dataclass
class AlertContent:
    title: str
    body: str
    data: Dict[str, str]


@dataclass
class DeliveryFailure:
    index: int
    token_preview: str
    error: str


@dataclass
class DispatchResult:
    success_count: int = 0
    failure_count: int = 0
    failures: List[DeliveryFailure] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.success_count + self.failure_count


@dataclass
class ReportOutcome:
    """Summary of one pipeline invocation for a created report."""
    report_id: str
    status: str  # invalid_report, no_recipients or sent
    candidates_found: int = 0
    used_fallback: bool = False
    recipients: int = 0
    dispatch: Optional[DispatchResult] = None
