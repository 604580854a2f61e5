# app/domain/repositories/activity_repo.py
from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
import logging
import time

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.errors import UpstreamUnavailable
from app.domain.models.activity import ActivityEvent, ActivityType

logger = logging.getLogger(__name__)

_KNOWN_TYPES = {t.value for t in ActivityType}


class ActivityRepo:
    """
    Read-only access to the 'events' collection.
    Documents: { user_id?, session_id?, product_id, event_type, timestamp }.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "events", timeout_ms: int = 3000):
        self.col = db[collection_name]
        self.timeout_ms = timeout_ms

    async def count_events_by_product(self, since: datetime) -> Dict[str, int]:
        pipeline: List[Dict[str, Any]] = [
            {"$match": {"timestamp": {"$gte": since}, "event_type": {"$in": sorted(_KNOWN_TYPES)}}},
            {"$group": {"_id": "$product_id", "n": {"$sum": 1}}},
            {"$match": {"_id": {"$ne": None}}},
        ]
        t0 = time.perf_counter()
        try:
            docs = await self.col.aggregate(pipeline, maxTimeMS=self.timeout_ms).to_list(length=None)
        except PyMongoError as e:
            raise UpstreamUnavailable("activity", e) from e
        logger.debug("count_events_by_product since=%s products=%s db_time=%.3fs", since, len(docs), time.perf_counter() - t0)
        return {d["_id"]: int(d["n"]) for d in docs}

    async def list_events_for_subject(self, subject_id: str, since: Optional[datetime] = None) -> List[ActivityEvent]:
        query: Dict[str, Any] = {"$or": [{"user_id": subject_id}, {"session_id": subject_id}]}
        if since is not None:
            query["timestamp"] = {"$gte": since}
        try:
            cursor = self.col.find(
                query,
                {"_id": 0, "product_id": 1, "event_type": 1, "timestamp": 1},
                max_time_ms=self.timeout_ms,
            ).sort("timestamp", -1)
            docs = [doc async for doc in cursor]
        except PyMongoError as e:
            raise UpstreamUnavailable("activity", e) from e

        events: List[ActivityEvent] = []
        for d in docs:
            # unknown event types (e.g. search) carry no product intent
            if d.get("event_type") not in _KNOWN_TYPES or not d.get("product_id"):
                continue
            events.append(ActivityEvent(
                subject_id=subject_id,
                product_id=d["product_id"],
                activity_type=ActivityType(d["event_type"]),
                timestamp=d.get("timestamp"),
            ))
        return events

    async def list_purchased_product_ids(self, subject_id: str) -> Set[str]:
        """Every product the subject ever purchased, regardless of age."""
        query = {
            "$or": [{"user_id": subject_id}, {"session_id": subject_id}],
            "event_type": ActivityType.PURCHASE.value,
        }
        try:
            ids = await self.col.distinct("product_id", query, maxTimeMS=self.timeout_ms)
        except PyMongoError as e:
            raise UpstreamUnavailable("activity", e) from e
        return {pid for pid in ids if pid}

    async def count_events_by_type(self, since: datetime, product_id: Optional[str] = None) -> Dict[str, int]:
        match: Dict[str, Any] = {"timestamp": {"$gte": since}}
        if product_id:
            match["product_id"] = product_id
        pipeline = [
            {"$match": match},
            {"$group": {"_id": "$event_type", "n": {"$sum": 1}}},
        ]
        try:
            docs = await self.col.aggregate(pipeline, maxTimeMS=self.timeout_ms).to_list(length=None)
        except PyMongoError as e:
            raise UpstreamUnavailable("activity", e) from e
        return {d["_id"]: int(d["n"]) for d in docs if d.get("_id") in _KNOWN_TYPES}
