# alerts/__init__.py

from .models import (
    Report,
    CandidateRecord,
    Candidate,
    CollectedCandidates,
    RecipientSet,
    AlertContent,
    DeliveryFailure,
    DispatchResult,
    ReportOutcome,
)
from .geohash_utils import geohash_for_location, geohash_query_bounds
from .geo_utils import distance_between_meters
from .presence_utils import CandidateQueryError, collect_candidates, scan_user_registry
from .filter_utils import filter_candidates
from .notification_utils import build_alert_content, build_message, dispatch_notifications
from .report_utils import parse_report, process_fire_report

__all__ = [
    # Models
    'Report',
    'CandidateRecord',
    'Candidate',
    'CollectedCandidates',
    'RecipientSet',
    'AlertContent',
    'DeliveryFailure',
    'DispatchResult',
    'ReportOutcome',

    # Pipeline stages
    'geohash_for_location',
    'geohash_query_bounds',
    'distance_between_meters',
    'CandidateQueryError',
    'collect_candidates',
    'scan_user_registry',
    'filter_candidates',
    'build_alert_content',
    'build_message',
    'dispatch_notifications',

    # Entry
    'parse_report',
    'process_fire_report',
]
