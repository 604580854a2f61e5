import pytest
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Set

from app.core.config import Settings
from app.core.errors import UpstreamUnavailable
from app.domain.models.activity import ActivityEvent, ActivityType
from app.domain.models.product import Product, ProductSignal
from app.domain.repositories.reco_cache_repo import InMemoryRecoCache
from app.domain.services.aggregator_svc import RecommendationAggregator
from app.domain.services.popularity_svc import PopularityScorer

NOW = datetime.now(timezone.utc).replace(microsecond=0)
OLD = NOW - timedelta(days=365)


# --- Fakes ---

class FakeSignalStore:
    def __init__(self, signals: List[ProductSignal]):
        self.signals = {s.product_id: s for s in signals}
        self.fail = False

    def _check(self):
        if self.fail:
            raise UpstreamUnavailable("signal", ConnectionError("signal store down"))

    async def list_active_product_signals(self, category_id: Optional[str] = None) -> List[ProductSignal]:
        self._check()
        return [
            s for s in self.signals.values()
            if s.is_active and (category_id is None or s.category_id == category_id)
        ]

    async def get_product_signal(self, product_id: str) -> Optional[ProductSignal]:
        self._check()
        return self.signals.get(product_id)

    async def get_product_signals(self, product_ids: Sequence[str]) -> List[ProductSignal]:
        self._check()
        return [self.signals[p] for p in product_ids if p in self.signals]


class FakeActivityStore:
    def __init__(self, events: Optional[List[ActivityEvent]] = None):
        self.events = list(events or [])
        self.fail = False

    def _check(self):
        if self.fail:
            raise UpstreamUnavailable("activity", ConnectionError("activity store down"))

    async def count_events_by_product(self, since: datetime) -> Dict[str, int]:
        self._check()
        counts: Dict[str, int] = {}
        for ev in self.events:
            if ev.timestamp and ev.timestamp >= since:
                counts[ev.product_id] = counts.get(ev.product_id, 0) + 1
        return counts

    async def list_events_for_subject(self, subject_id: str, since: Optional[datetime] = None) -> List[ActivityEvent]:
        self._check()
        return [
            ev for ev in self.events
            if ev.subject_id == subject_id and (since is None or (ev.timestamp and ev.timestamp >= since))
        ]

    async def list_purchased_product_ids(self, subject_id: str) -> Set[str]:
        self._check()
        return {
            ev.product_id for ev in self.events
            if ev.subject_id == subject_id and ev.activity_type == ActivityType.PURCHASE
        }

    async def count_events_by_type(self, since: datetime, product_id: Optional[str] = None) -> Dict[str, int]:
        self._check()
        counts: Dict[str, int] = {}
        for ev in self.events:
            if ev.timestamp and ev.timestamp >= since and (product_id is None or ev.product_id == product_id):
                counts[ev.activity_type.value] = counts.get(ev.activity_type.value, 0) + 1
        return counts


class FakeCatalog:
    def __init__(self, signals: List[ProductSignal]):
        self.products = {
            s.product_id: Product(
                product_id=s.product_id,
                name=f"Product {s.product_id}",
                category_id=s.category_id,
                price=s.price,
                stock=s.stock,
                is_active=s.is_active,
            )
            for s in signals
        }
        self.fail = False

    async def get_products_by_ids(self, product_ids: Sequence[str]) -> List[Product]:
        if self.fail:
            raise UpstreamUnavailable("catalog", ConnectionError("catalog down"))
        return [self.products[p] for p in product_ids if p in self.products and self.products[p].is_active]


class FakeUserDirectory:
    def __init__(self, users=()):
        self.users = set(users)
        self.fail = False

    async def user_exists(self, user_id: str) -> bool:
        if self.fail:
            raise UpstreamUnavailable("users", ConnectionError("users down"))
        return user_id in self.users


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds


# --- Builders ---

def signal(pid: str, views=0, carts=0, favs=0, orders=0, created_at=OLD, category="c1", price=100.0, stock=10, active=True):
    return ProductSignal(
        product_id=pid,
        view_count=views,
        cart_count=carts,
        favorite_count=favs,
        order_count=orders,
        created_at=created_at,
        is_active=active,
        category_id=category,
        price=price,
        stock=stock,
    )


def event(subject: str, pid: str, kind: ActivityType = ActivityType.VIEW, at: datetime = NOW - timedelta(hours=1)):
    return ActivityEvent(subject_id=subject, product_id=pid, activity_type=kind, timestamp=at)


def catalog_signals(n: int = 30) -> List[ProductSignal]:
    """n active products with distinct, decreasing engagement; two categories."""
    return [
        signal(f"p{i:02d}", views=(n - i) * 10, carts=n - i, category="c1" if i % 2 == 0 else "c2")
        for i in range(n)
    ]


# --- Fixtures ---

@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def scorer(settings) -> PopularityScorer:
    return PopularityScorer(settings)


@pytest.fixture
def signals() -> List[ProductSignal]:
    return catalog_signals(30)


@pytest.fixture
def signal_store(signals) -> FakeSignalStore:
    return FakeSignalStore(signals)


@pytest.fixture
def activity_store() -> FakeActivityStore:
    return FakeActivityStore()


@pytest.fixture
def catalog(signals) -> FakeCatalog:
    return FakeCatalog(signals)


@pytest.fixture
def users() -> FakeUserDirectory:
    return FakeUserDirectory(users={"u1", "u2"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> InMemoryRecoCache:
    return InMemoryRecoCache(clock=clock)


@pytest.fixture
def aggregator(signal_store, activity_store, catalog, users, cache, settings) -> RecommendationAggregator:
    return RecommendationAggregator(
        signals=signal_store,
        activity=activity_store,
        catalog=catalog,
        users=users,
        cache=cache,
        settings=settings,
    )
