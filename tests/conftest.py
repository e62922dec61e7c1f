"""
Shared fixtures: an in-memory Firestore stand-in and geometry helpers.
"""

from __future__ import annotations

import math
import threading
import time

import pytest

from alerts.geohash_utils import geohash_for_location
from alerts.geo_utils import EARTH_RADIUS_M
from config.loader import AlertSettings


def offset_point(center, distance_m, bearing_deg):
    """Point reached from ``center`` after ``distance_m`` along ``bearing_deg`` on the sphere."""
    lat1 = math.radians(center[0])
    lon1 = math.radians(center[1])
    theta = math.radians(bearing_deg)
    delta = distance_m / EARTH_RADIUS_M

    lat2 = math.asin(math.sin(lat1) * math.cos(delta)
                     + math.cos(lat1) * math.sin(delta) * math.cos(theta))
    lon2 = lon1 + math.atan2(math.sin(theta) * math.sin(delta) * math.cos(lat1),
                             math.cos(delta) - math.sin(lat1) * math.sin(lat2))
    lon_deg = (math.degrees(lon2) + 540.0) % 360.0 - 180.0
    return math.degrees(lat2), lon_deg


def presence_doc(uid, point, token, doc_id=None):
    return doc_id or uid, {
        "uid": uid,
        "latitude": point[0],
        "longitude": point[1],
        "geohash": geohash_for_location(point),
        "fcmToken": token,
    }


class FakeDocument:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeQuery:
    def __init__(self, collection, field):
        self._collection = collection
        self._field = field
        self._start = None
        self._end = None

    def start_at(self, values):
        self._start = values[self._field]
        return self

    def end_before(self, values):
        self._end = values[self._field]
        return self

    def get(self):
        db = self._collection.db
        with db.lock:
            db.queried_bounds.append((self._start, self._end))
        if db.query_error is not None and db.query_error_bound in (None, (self._start, self._end)):
            raise db.query_error

        with db.lock:
            db.in_flight += 1
            db.max_in_flight = max(db.max_in_flight, db.in_flight)
        try:
            if db.barrier is not None:
                db.barrier.wait()
            delay = db.query_delays.get((self._start, self._end))
            if delay:
                time.sleep(delay)
        finally:
            with db.lock:
                db.in_flight -= 1

        docs = [doc for doc in self._collection.docs if self._field in doc._data]
        docs.sort(key=lambda doc: doc._data[self._field])
        return [doc for doc in docs
                if self._start <= doc._data[self._field] < self._end]


class FakeCollection:
    def __init__(self, db, name):
        self.db = db
        self.name = name
        self.docs = []

    def add(self, doc_id, data):
        self.docs.append(FakeDocument(doc_id, data))

    def order_by(self, field):
        return FakeQuery(self, field)

    def stream(self):
        self.db.stream_calls.append(self.name)
        if self.db.stream_error is not None:
            raise self.db.stream_error
        return iter(list(self.docs))


class FakeFirestore:
    """Just enough of google.cloud.firestore.Client for the alert pipeline."""

    def __init__(self):
        self.collections = {}
        self.lock = threading.Lock()
        self.queried_bounds = []
        self.stream_calls = []
        self.query_error = None
        self.query_error_bound = None
        self.query_delays = {}
        self.stream_error = None
        self.barrier = None
        self.in_flight = 0
        self.max_in_flight = 0

    def collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def settings():
    return AlertSettings(send_delay_seconds=0)
