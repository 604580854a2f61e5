from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import get_settings
from app.core.errors import RecoException
from app.core.lifespan import lifespan
from app.api.v1.routers.health import router as health_router
from app.api.v1.routers.recommendations import router as recommendations_router
from app.api.v1.routers.products import router as products_router
from app.api.v1.routers.activity import router as activity_router
from app.core.logging import configure_logging

import logging

settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO, colored=settings.LOG_COLOR)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV, e.g. "https://shop.example.com,https://www.shop.example.com"
allowed_origins = [o.strip() for o in settings.ALLOWED_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,                        # keeps preflight simple
    allow_methods=["GET", "DELETE", "OPTIONS"],
    allow_headers=["*"],                            # or ["content-type","x-api-version"]
    max_age=86400,
)

# ------- Errors -------
@app.exception_handler(RecoException)
async def reco_exception_handler(request: Request, exc: RecoException):
    logger.error("Request failed path=%s status=%s err=%s", request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "details": exc.details, "data": []},
    )

# ------- Routes -------
app.include_router(health_router)
app.include_router(recommendations_router)   # bundle, per-category pages, mixed feed, cache
app.include_router(products_router)          # product-context mixed feed, similar
app.include_router(activity_router)          # activity summary
