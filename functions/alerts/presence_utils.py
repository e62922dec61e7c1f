# alerts/presence_utils.py

import asyncio
from typing import List, Sequence, Tuple

from firebase_functions import logger

from config.loader import AlertSettings

from .geo_utils import distance_between_meters, read_location
from .geohash_utils import GeohashRange
from .models import CandidateRecord, CollectedCandidates


class CandidateQueryError(Exception):
    """A geohash range query against the presence index failed."""

    def __init__(self, bound: GeohashRange, cause: Exception):
        self.bound = bound
        self.cause = cause
        super().__init__(f"Presence query failed for bound {bound[0]!r}..{bound[1]!r}: {cause}")


def _query_bound(db, collection: str, bound: GeohashRange) -> List[CandidateRecord]:
    start, end = bound
    query = (db.collection(collection)
             .order_by("geohash")
             .start_at({"geohash": start})
             .end_before({"geohash": end}))
    return [CandidateRecord(doc_id=doc.id, data=doc.to_dict() or {}) for doc in query.get()]


async def query_presence_bounds(db, bounds: Sequence[GeohashRange], collection: str) -> List[CandidateRecord]:
    """
    Run one presence range query per bound concurrently and merge the results.

    Every query must finish before anything is returned. Results are merged in
    bound order, duplicates across overlapping bounds included.

    Raises:
        CandidateQueryError: if any bound query fails
    """
    async def run(index: int, bound: GeohashRange) -> List[CandidateRecord]:
        logger.info(f"🔍 Querying bound {index + 1}/{len(bounds)}: {bound[0]} to {bound[1]}")
        try:
            records = await asyncio.to_thread(_query_bound, db, collection, bound)
        except Exception as e:
            raise CandidateQueryError(bound, e) from e
        logger.info(f"📋 Found {len(records)} candidate documents in bound {index + 1}")
        return records

    results = await asyncio.gather(*(run(i, bound) for i, bound in enumerate(bounds)))

    merged = []
    for records in results:
        merged.extend(records)
    return merged


def scan_user_registry(db, center: Tuple[float, float], radius_meters: float, collection: str) -> List[CandidateRecord]:
    """
    Scan every registered user and keep those within the radius.

    Used only when the presence index has no candidates. Failures are logged
    and reported as an empty result.
    """
    candidates = []
    try:
        user_docs = list(db.collection(collection).stream())
        logger.info(f"📋 Found {len(user_docs)} users in {collection} collection")

        for user_doc in user_docs:
            user_data = user_doc.to_dict() or {}
            location = user_data.get("location")
            token = user_data.get("fcmToken")
            if not location or not token:
                continue

            user_lat, user_lon = read_location(location)
            if user_lat is None or user_lon is None:
                logger.info(f"⚠️ User {user_doc.id} has an unreadable location, skipping")
                continue

            dist_m = distance_between_meters((user_lat, user_lon), center)
            logger.info(f"👤 User {user_doc.id} at ({user_lat}, {user_lon}) - Distance: {round(dist_m)}m")

            if dist_m <= radius_meters:
                logger.info(f"✅ Adding user {user_doc.id} from {collection} collection")
                candidates.append(CandidateRecord(
                    doc_id=user_doc.id,
                    data={
                        "uid": user_doc.id,
                        "latitude": user_lat,
                        "longitude": user_lon,
                        "fcmToken": token,
                    },
                ))
    except Exception as e:
        logger.error(f"❌ Error checking {collection} collection: {e}")
        return []

    return candidates


def collect_candidates(db, bounds: Sequence[GeohashRange], center: Tuple[float, float],
                       radius_meters: float, settings: AlertSettings) -> CollectedCandidates:
    """
    Collect raw candidate records for a report.

    Queries the presence index over ``bounds``; when that yields nothing, falls
    back to a single scan of the user registry filtered by radius.

    Raises:
        CandidateQueryError: if a presence bound query fails
    """
    records = asyncio.run(query_presence_bounds(db, bounds, settings.presence_collection))
    logger.info(f"📊 Total candidate documents: {len(records)}")

    if records:
        return CollectedCandidates(records=records)

    logger.info(f"🔍 No users found in {settings.presence_collection}, "
                f"checking {settings.users_collection} collection...")
    fallback = scan_user_registry(db, center, radius_meters, settings.users_collection)
    logger.info(f"📊 Total candidate documents after users check: {len(fallback)}")
    return CollectedCandidates(records=fallback, used_fallback=True)
