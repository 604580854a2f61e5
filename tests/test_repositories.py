"""Mongo repositories against a minimal in-memory collection double."""

from datetime import timedelta

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from app.core.config import Settings
from app.core.errors import UpstreamUnavailable
from app.db.mongo import client_options
from app.domain.models.activity import ActivityType
from app.domain.models.identity import Identity
from app.domain.models.reco import RecoLimits
from app.domain.repositories.activity_repo import ActivityRepo
from app.domain.repositories.product_repo import ProductRepo
from app.domain.repositories.user_repo import UserRepo
from app.domain.services.aggregator_svc import RecommendationAggregator

from conftest import NOW


class FakeCursor:
    def __init__(self, docs):
        self.docs = list(docs)

    def sort(self, key, direction):
        self.docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def __aiter__(self):
        self._it = iter(self.docs)
        return self

    async def __anext__(self):
        try:
            return next(self._it)
        except StopIteration:
            raise StopAsyncIteration

    async def to_list(self, length=None):
        return list(self.docs)


class FakeCollection:
    """Records the last query; returns canned documents."""

    def __init__(self, docs=(), aggregate_result=(), fail=False):
        self.docs = list(docs)
        self.aggregate_result = list(aggregate_result)
        self.fail = fail
        self.calls = []

    def _check(self):
        if self.fail:
            raise ServerSelectionTimeoutError("no servers")

    def find(self, query, projection=None, **kwargs):
        self._check()
        self.calls.append(("find", query, kwargs))
        return FakeCursor(self.docs)

    async def find_one(self, query, projection=None):
        self._check()
        self.calls.append(("find_one", query))
        return self.docs[0] if self.docs else None

    async def distinct(self, key, query=None, **kwargs):
        self._check()
        self.calls.append(("distinct", query, kwargs))
        return list(dict.fromkeys(d.get(key) for d in self.docs))

    def aggregate(self, pipeline, **kwargs):
        self._check()
        self.calls.append(("aggregate", pipeline, kwargs))
        return FakeCursor(self.aggregate_result)


# ---- products ------------------------------------------------------------------

@pytest.mark.asyncio
async def test_signals_tolerate_missing_counters():
    col = FakeCollection([{"product_id": "a", "view_count": 4, "cart_count": None, "is_active": True}])
    signals = await ProductRepo({"products": col}, timeout_ms=1500).list_active_product_signals(category_id="c1")

    assert signals[0].view_count == 4
    assert signals[0].cart_count == 0
    _, query, kwargs = col.calls[0]
    assert query == {"is_active": True, "category_id": "c1"}
    assert kwargs["max_time_ms"] == 1500


@pytest.mark.asyncio
async def test_catalog_lookup_is_active_only():
    col = FakeCollection([{"product_id": "a", "name": "A", "price": 9.5, "images": None}])
    products = await ProductRepo({"products": col}).get_products_by_ids(["a", "b"])
    assert [p.name for p in products] == ["A"]
    assert products[0].images == []
    assert col.calls[0][1] == {"product_id": {"$in": ["a", "b"]}, "is_active": True}


@pytest.mark.asyncio
async def test_malformed_signal_documents_are_skipped():
    col = FakeCollection([
        {"product_id": "a", "view_count": 5, "is_active": True},
        {"product_id": "b", "view_count": "n/a", "is_active": True},
        {"view_count": 3, "is_active": True},  # no product_id
    ])
    repo = ProductRepo({"products": col})
    assert [s.product_id for s in await repo.list_active_product_signals()] == ["a"]
    assert [s.product_id for s in await repo.get_product_signals(["a", "b"])] == ["a"]


@pytest.mark.asyncio
async def test_malformed_single_signal_reads_as_missing():
    col = FakeCollection([{"product_id": "b", "order_count": "lots"}])
    assert await ProductRepo({"products": col}).get_product_signal("b") is None


@pytest.mark.asyncio
async def test_malformed_catalog_documents_are_skipped():
    col = FakeCollection([
        {"product_id": "legacy", "is_active": True},  # no name
        {"product_id": "a", "name": "A", "is_active": True},
    ])
    products = await ProductRepo({"products": col}).get_products_by_ids(["legacy", "a"])
    assert [p.product_id for p in products] == ["a"]


@pytest.mark.asyncio
async def test_bundle_survives_one_malformed_catalog_document(activity_store, users, cache, settings):
    docs = [
        {"product_id": f"p{i:02d}", "name": f"P{i}", "view_count": 30 - i, "is_active": True}
        for i in range(30)
    ]
    docs[0] = {"product_id": "p00", "view_count": 30, "is_active": True}  # legacy record without a name
    repo = ProductRepo({"products": FakeCollection(docs)})
    aggregator = RecommendationAggregator(
        signals=repo, activity=activity_store, catalog=repo, users=users, cache=cache, settings=settings,
    )

    bundle = await aggregator.get_all(Identity.guest(), RecoLimits())
    popular = [i.product_id for i in bundle.popular]
    assert "p00" not in popular
    assert popular[0] == "p01"
    assert len(popular) == 11


@pytest.mark.asyncio
async def test_empty_id_lists_skip_the_query():
    col = FakeCollection()
    repo = ProductRepo({"products": col})
    assert await repo.get_products_by_ids([]) == []
    assert await repo.get_product_signals([]) == []
    assert col.calls == []


@pytest.mark.asyncio
async def test_product_errors_are_wrapped():
    repo = ProductRepo({"products": FakeCollection(fail=True)})
    with pytest.raises(UpstreamUnavailable) as exc:
        await repo.list_active_product_signals()
    assert exc.value.store == "signal"

    with pytest.raises(UpstreamUnavailable) as exc:
        await repo.get_products_by_ids(["a"])
    assert exc.value.store == "catalog"
    assert exc.value.status_code == 503


# ---- events ----------------------------------------------------------------------

@pytest.mark.asyncio
async def test_subject_history_skips_unknown_types():
    col = FakeCollection([
        {"product_id": "a", "event_type": "view", "timestamp": NOW - timedelta(hours=2)},
        {"product_id": "b", "event_type": "purchase", "timestamp": NOW - timedelta(hours=1)},
        {"product_id": None, "event_type": "search", "timestamp": NOW},
    ])
    events = await ActivityRepo({"events": col}).list_events_for_subject("u1", since=NOW - timedelta(days=90))

    assert [(e.product_id, e.activity_type) for e in events] == [("b", ActivityType.PURCHASE), ("a", ActivityType.VIEW)]
    assert all(e.subject_id == "u1" for e in events)
    query = col.calls[0][1]
    assert query["$or"] == [{"user_id": "u1"}, {"session_id": "u1"}]


@pytest.mark.asyncio
async def test_count_events_by_product():
    col = FakeCollection(aggregate_result=[{"_id": "a", "n": 3}, {"_id": "b", "n": 1}])
    counts = await ActivityRepo({"events": col}, timeout_ms=900).count_events_by_product(NOW)
    assert counts == {"a": 3, "b": 1}
    assert col.calls[0][2] == {"maxTimeMS": 900}


@pytest.mark.asyncio
async def test_count_events_by_type_drops_unknown():
    col = FakeCollection(aggregate_result=[{"_id": "view", "n": 7}, {"_id": "search", "n": 2}])
    counts = await ActivityRepo({"events": col}).count_events_by_type(NOW, product_id="a")
    assert counts == {"view": 7}
    assert col.calls[0][1][0] == {"$match": {"timestamp": {"$gte": NOW}, "product_id": "a"}}


@pytest.mark.asyncio
async def test_purchased_ids_have_no_time_bound():
    col = FakeCollection([{"product_id": "a"}, {"product_id": "b"}, {"product_id": None}])
    purchased = await ActivityRepo({"events": col}, timeout_ms=700).list_purchased_product_ids("u1")

    assert purchased == {"a", "b"}
    _, query, kwargs = col.calls[0]
    assert query == {"$or": [{"user_id": "u1"}, {"session_id": "u1"}], "event_type": "purchase"}
    assert "timestamp" not in query
    assert kwargs == {"maxTimeMS": 700}


@pytest.mark.asyncio
async def test_activity_errors_are_wrapped():
    with pytest.raises(UpstreamUnavailable) as exc:
        await ActivityRepo({"events": FakeCollection(fail=True)}).count_events_by_product(NOW)
    assert exc.value.store == "activity"


# ---- users -------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_user_exists():
    assert await UserRepo({"users": FakeCollection([{"user_id": "u1"}])}).user_exists("u1") is True
    assert await UserRepo({"users": FakeCollection()}).user_exists("u1") is False
    with pytest.raises(UpstreamUnavailable):
        await UserRepo({"users": FakeCollection(fail=True)}).user_exists("u1")


# ---- client options -----------------------------------------------------------------

def test_client_options_add_ca_bundle_for_srv_uris():
    srv = client_options(Settings(MONGO_URI="mongodb+srv://cluster.example.net/db"))
    plain = client_options(Settings(MONGO_URI="mongodb://localhost:27017"))
    assert srv["tls"] is True and srv["tlsCAFile"]
    assert "tls" not in plain
    assert plain["tz_aware"] is True
