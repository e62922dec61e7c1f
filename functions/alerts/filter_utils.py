# alerts/filter_utils.py

from typing import Iterable, Optional, Tuple

from firebase_functions import logger

from .geo_utils import distance_between_meters, to_finite_float
from .models import Candidate, CandidateRecord, RecipientSet


def _token_preview(token: str) -> str:
    return f"{token[:20]}..."


def to_candidate(record: CandidateRecord, center: Tuple[float, float]) -> Optional[Candidate]:
    """Build a Candidate from a raw record, or None when the token or coordinates are unusable."""
    data = record.data or {}
    uid = data.get("uid") or record.doc_id
    token = data.get("fcmToken")
    lat = to_finite_float(data.get("latitude"))
    lon = to_finite_float(data.get("longitude"))

    if not isinstance(token, str) or not token or lat is None or lon is None:
        return None

    return Candidate(
        uid=uid,
        latitude=lat,
        longitude=lon,
        fcm_token=token,
        distance_meters=distance_between_meters((lat, lon), center),
    )


def filter_candidates(
    records: Iterable[CandidateRecord],
    center: Tuple[float, float],
    radius_meters: float,
    reporter_uid: Optional[str] = None,
) -> RecipientSet:
    """
    Reduce raw candidate records to the final recipient tokens.

    Records are processed in order. A record is dropped when its token or
    coordinates are unusable, when it belongs to the reporter, when it lies
    beyond ``radius_meters`` of ``center`` or when its uid was already
    accepted (the first occurrence wins).

    Args:
        records: Merged records from the presence index or the user registry
        center: Report (latitude, longitude)
        radius_meters: Report radius in meters
        reporter_uid: Uid of the report author, never notified

    Returns:
        RecipientSet with tokens and uids in acceptance order
    """
    recipients = RecipientSet(discarded={"invalid": 0, "reporter": 0, "out_of_range": 0, "duplicate": 0})
    accepted_uids = set()

    for record in records:
        candidate = to_candidate(record, center)
        if candidate is None:
            uid = (record.data or {}).get("uid") or record.doc_id
            logger.info(f"⚠️ Skipping user {uid}: missing token or invalid coordinates")
            recipients.discarded["invalid"] += 1
            continue

        if reporter_uid and candidate.uid == reporter_uid:
            logger.info(f"🚫 Skipping reporter {candidate.uid} (same as report creator)")
            recipients.discarded["reporter"] += 1
            continue

        if candidate.distance_meters > radius_meters:
            logger.info(f"❌ User {candidate.uid} too far: "
                        f"{round(candidate.distance_meters)}m > {radius_meters}m")
            recipients.discarded["out_of_range"] += 1
            continue

        if candidate.uid in accepted_uids:
            logger.info(f"🔄 User {candidate.uid} already processed (duplicate)")
            recipients.discarded["duplicate"] += 1
            continue

        logger.info(f"✅ Adding user {candidate.uid} ({round(candidate.distance_meters)}m, "
                    f"token {_token_preview(candidate.fcm_token)})")
        accepted_uids.add(candidate.uid)
        recipients.uids.append(candidate.uid)
        recipients.tokens.append(candidate.fcm_token)

    return recipients

