from app.domain.models.activity import ActivityType
from app.domain.models.reco import Reason

# Category interest contributed by one event of each type
INTEREST_WEIGHTS = {
    ActivityType.VIEW: 1,
    ActivityType.CART_ADD: 3,
    ActivityType.FAVORITE: 5,
    ActivityType.PURCHASE: 10,
}

# Dedup tie-break in the mixed feed: higher wins (most specific source first)
REASON_PRIORITY = {
    Reason.PERSONALIZED: 3,
    Reason.TRENDING: 2,
    Reason.POPULAR: 1,
    Reason.SIMILAR: 0,
}

# Interleaving order of the mixed feed
MIXED_ORDER = (Reason.PERSONALIZED, Reason.SIMILAR, Reason.TRENDING, Reason.POPULAR)

# Similar products: same category, price within ±30% of the source
SIMILAR_PRICE_BAND = 0.3

# Activity summary timeframes (days)
TIMEFRAMES = {"day": 1, "week": 7, "month": 30}

# Cache categories (first key segment after the version)
CAT_POPULAR = "popular"
CAT_TRENDING = "trending"
CAT_PERSONALIZED = "personalized"
CAT_SIMILAR = "similar"
CAT_MIXED = "mixed"
