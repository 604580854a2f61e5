import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from app.core.config import Settings, get_settings
from app.core.errors import NotFoundIdentity, TotalFailure
from app.domain.models.identity import Identity
from app.domain.models.reco import (
    Pagination,
    Reason,
    RecoBundle,
    RecoItem,
    RecoItemOut,
    RecoLimits,
    RecommendationPage,
)
from app.domain.repositories.base import ActivityStore, ProductCatalog, SignalStore, UserDirectory
from app.domain.repositories.reco_cache_repo import RecoCache, reco_key
from app.domain.services.constants import (
    CAT_MIXED,
    CAT_PERSONALIZED,
    CAT_POPULAR,
    CAT_SIMILAR,
    CAT_TRENDING,
)
from app.domain.services.join import join_scores_with_products
from app.domain.services.mixed_feed import dedup_and_interleave
from app.domain.services.personalization_svc import PersonalizationEngine
from app.domain.services.popularity_svc import PopularityScorer
from app.domain.services.similar_svc import SimilarFinder
from app.domain.services.trending_svc import TrendingAnalyzer

logger = logging.getLogger(__name__)

ANY_IDENTITY = "any"


class RecommendationAggregator:
    """
    Orchestrates popular / trending / personalized / similar sources.

    Fallback policy:
      - guest (or unknown user id) -> personalized = popularity ranking, tagged 'personalized'
      - known user                 -> PersonalizationEngine (falls back on its own)
      - popular / trending         -> identical for every identity
    A failing source degrades to an empty list; only a request where every
    source failed raises TotalFailure.

    Rankings are cached per (category, identity) for `reco_cache_ttl` seconds
    and sliced per request; mixed feeds are cached per paging session.
    """

    def __init__(
        self,
        *,
        signals: SignalStore,
        activity: ActivityStore,
        catalog: ProductCatalog,
        users: UserDirectory,
        cache: RecoCache,
        settings: Optional[Settings] = None,
        version: str = "v1",
        scorer: Optional[PopularityScorer] = None,
    ):
        self.settings = settings or get_settings()
        self.version = version
        self.signals = signals
        self.catalog = catalog
        self.users = users
        self.cache = cache
        self.scorer = scorer or PopularityScorer(self.settings)
        self.trending_analyzer = TrendingAnalyzer(activity, signals, self.scorer, self.settings)
        self.personalization = PersonalizationEngine(activity, signals, self.scorer, self.settings)
        self.similar_finder = SimilarFinder(signals, self.scorer)

    # ---- helpers -----------------------------------------------------------

    def _key(self, category: str, identity: str, limit: Optional[int], **params) -> str:
        return reco_key(self.settings.reco_cache_prefix, self.version, category, identity, limit or 0, **params)

    async def _cached(self, key: str, ttl: int, compute: Callable[[], Awaitable[List[RecoItem]]]) -> List[RecoItem]:
        try:
            if (cached := await self.cache.get(key)) is not None:
                logger.debug("reco cache_hit key=%s items=%s", key, len(cached))
                return cached
        except Exception as e:
            logger.warning("reco cache.get error key=%s err=%s", key, e)

        logger.debug("reco cache_miss key=%s", key)
        items = await compute()
        try:
            await self.cache.set(key, items, ttl=ttl)
        except Exception as e:
            logger.warning("reco cache.set error key=%s err=%s", key, e)
        return items

    async def _guard(self, name: str, aw: Awaitable[List[RecoItem]], failures: Dict[str, str]) -> List[RecoItem]:
        try:
            return await aw
        except Exception as e:
            logger.warning("reco source degraded to empty source=%s err=%s", name, e)
            failures[name] = str(e)
            return []

    async def _join(self, lists: Sequence[List[RecoItem]]) -> List[List[RecoItemOut]]:
        ids = list(dict.fromkeys(i.product_id for lst in lists for i in lst))
        if not ids:
            return [[] for _ in lists]
        try:
            products = await self.catalog.get_products_by_ids(ids)
        except Exception as e:
            logger.error("reco catalog join failed ids=%s err=%s", len(ids), e)
            raise TotalFailure({"catalog": str(e)}) from e
        return [join_scores_with_products(lst, products) for lst in lists]

    @staticmethod
    def _raise_if_total(failures: Dict[str, str], lists: Sequence[List[RecoItem]]) -> None:
        if failures and not any(lists):
            raise TotalFailure(failures)

    # ---- identity ----------------------------------------------------------

    async def resolve_identity(self, identity: Identity, strict: bool = False) -> Identity:
        """
        Unknown user ids are served as guests; a directory outage keeps the id.
        With `strict`, an unknown id raises NotFoundIdentity instead.
        """
        if identity.is_guest:
            return identity
        try:
            if await self.users.user_exists(identity.user_id):
                return identity
        except Exception as e:
            logger.warning("user directory unavailable user_id=%s err=%s", identity.user_id, e)
            return identity
        if strict:
            raise NotFoundIdentity(identity.user_id)
        logger.info("unknown user_id=%s served as guest", identity.user_id)
        return Identity.guest()

    # ---- sources (full rankings, cached) -----------------------------------

    async def popular_ranking(self) -> List[RecoItem]:
        """Full popularity ranking; raises when the signal store is unavailable."""
        async def compute():
            signals = await self.signals.list_active_product_signals()
            return self.scorer.rank(signals, self.settings.rank_depth, reason=Reason.POPULAR)
        return await self._cached(self._key(CAT_POPULAR, ANY_IDENTITY, None), self.settings.reco_cache_ttl, compute)

    async def trending_ranking(self, window_days: Optional[int] = None) -> List[RecoItem]:
        days = window_days or self.settings.trending_window_days
        async def compute():
            return await self.trending_analyzer.trending(self.settings.rank_depth, window_days=days)
        key = self._key(CAT_TRENDING, ANY_IDENTITY, None, days=days)
        return await self._cached(key, self.settings.reco_cache_ttl, compute)

    async def personalized_ranking(self, identity: Identity) -> List[RecoItem]:
        if identity.is_guest:
            return [i.retag(Reason.PERSONALIZED) for i in await self.popular_ranking()]
        async def compute():
            return await self.personalization.personalize(identity.user_id, self.settings.rank_depth)
        key = self._key(CAT_PERSONALIZED, identity.cache_token, None)
        return await self._cached(key, self.settings.reco_cache_ttl, compute)

    async def similar_ranking(self, product_id: str, limit: int) -> List[RecoItem]:
        async def compute():
            return await self.similar_finder.similar(product_id, limit)
        key = self._key(CAT_SIMILAR, ANY_IDENTITY, limit, product=product_id)
        return await self._cached(key, self.settings.reco_cache_ttl, compute)

    # ---- public operations -------------------------------------------------

    async def get_all(self, identity: Identity, limits: RecoLimits) -> RecoBundle:
        """
        The three home-page lists, fetched concurrently.
        For guests `personalized` is the head of the popular ranking.
        """
        t0 = time.perf_counter()
        identity = await self.resolve_identity(identity)
        failures: Dict[str, str] = {}

        if identity.is_guest:
            popular, trending = await asyncio.gather(
                self._guard(CAT_POPULAR, self.popular_ranking(), failures),
                self._guard(CAT_TRENDING, self.trending_ranking(), failures),
            )
            # same ranking object: same ids, same order
            personalized = [i.retag(Reason.PERSONALIZED) for i in popular]
            if CAT_POPULAR in failures:
                failures[CAT_PERSONALIZED] = failures[CAT_POPULAR]
        else:
            popular, trending, personalized = await asyncio.gather(
                self._guard(CAT_POPULAR, self.popular_ranking(), failures),
                self._guard(CAT_TRENDING, self.trending_ranking(), failures),
                self._guard(CAT_PERSONALIZED, self.personalized_ranking(identity), failures),
            )

        popular = popular[:limits.popular]
        trending = trending[:limits.trending]
        personalized = personalized[:limits.personalized]
        self._raise_if_total(failures, [popular, trending, personalized])

        j_pers, j_pop, j_trend = await self._join([personalized, popular, trending])
        bundle = RecoBundle(personalized=j_pers, popular=j_pop, trending=j_trend)
        logger.info(
            "get_all done user=%s personalized=%s popular=%s trending=%s degraded=%s total_time=%.3fs",
            identity.cache_token, len(j_pers), len(j_pop), len(j_trend), sorted(failures), time.perf_counter() - t0,
        )
        return bundle

    async def get_category_page(
        self,
        category: Reason,
        identity: Identity,
        page: int,
        limit: int,
        window_days: Optional[int] = None,
    ) -> RecommendationPage:
        """One page of a single category ranking."""
        identity = await self.resolve_identity(identity)
        failures: Dict[str, str] = {}
        if category == Reason.POPULAR:
            ranking = await self._guard(CAT_POPULAR, self.popular_ranking(), failures)
        elif category == Reason.TRENDING:
            ranking = await self._guard(CAT_TRENDING, self.trending_ranking(window_days), failures)
        elif category == Reason.PERSONALIZED:
            ranking = await self._guard(CAT_PERSONALIZED, self.personalized_ranking(identity), failures)
        else:
            raise ValueError(f"Unsupported category page: {category}")

        self._raise_if_total(failures, [ranking])
        offset = (page - 1) * limit
        (items,) = await self._join([ranking[offset:offset + limit]])
        return RecommendationPage(items=items, total=len(ranking), pagination=Pagination.build(page, limit, len(ranking)))

    async def get_mixed(
        self,
        identity: Identity,
        limit: int,
        offset: int = 0,
        product_id: Optional[str] = None,
    ) -> RecommendationPage:
        """
        Deduplicated infinite-scroll feed.

        The merged sequence is built once per paging session
        (identity, product context, limit) and cached, so every offset slices
        the same snapshot and consecutive pages never repeat a product.
        """
        t0 = time.perf_counter()
        identity = await self.resolve_identity(identity)
        key = self._key(CAT_MIXED, identity.cache_token, limit, product=product_id)

        async def compute():
            depth = self.settings.mixed_source_depth
            failures: Dict[str, str] = {}

            async def none():
                return []

            personalized, similar, trending, popular = await asyncio.gather(
                # guests get no personalized lane: it would only repeat the popular one
                self._guard(CAT_PERSONALIZED, self.personalized_ranking(identity), failures) if not identity.is_guest else none(),
                self._guard(CAT_SIMILAR, self.similar_ranking(product_id, depth), failures) if product_id else none(),
                self._guard(CAT_TRENDING, self.trending_ranking(), failures),
                self._guard(CAT_POPULAR, self.popular_ranking(), failures),
            )
            sources = {
                Reason.PERSONALIZED: personalized[:depth],
                Reason.SIMILAR: similar[:depth],
                Reason.TRENDING: trending[:depth],
                Reason.POPULAR: popular[:depth],
            }
            self._raise_if_total(failures, list(sources.values()))
            return dedup_and_interleave(sources, exclude_id=product_id)

        merged = await self._cached(key, self.settings.mixed_session_ttl, compute)
        (items,) = await self._join([merged[offset:offset + limit]])
        page = offset // limit + 1
        result = RecommendationPage(
            items=items,
            total=len(merged),
            pagination=Pagination.build(page, limit, len(merged), offset=offset),
            source_product_id=product_id,
        )
        logger.info(
            "get_mixed done user=%s product_id=%s offset=%s limit=%s items=%s total=%s total_time=%.3fs",
            identity.cache_token, product_id, offset, limit, len(items), len(merged), time.perf_counter() - t0,
        )
        return result

    async def get_similar(self, product_id: str, limit: int) -> RecommendationPage:
        failures: Dict[str, str] = {}
        ranking = await self._guard(CAT_SIMILAR, self.similar_ranking(product_id, limit), failures)
        self._raise_if_total(failures, [ranking])
        (items,) = await self._join([ranking])
        return RecommendationPage(
            items=items,
            total=len(items),
            pagination=Pagination.build(1, limit, len(items)),
            source_product_id=product_id,
        )

    async def invalidate(self, prefix: str = "") -> int:
        """Drop cached rankings whose key starts with `{reco_prefix}:{prefix}`."""
        full = f"{self.settings.reco_cache_prefix}:{prefix}"
        n = await self.cache.invalidate_prefix(full)
        logger.info("reco cache invalidated prefix=%s entries=%s", full, n)
        return n
