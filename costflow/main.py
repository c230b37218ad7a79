from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .bus import COMPUTED
from .config import settings
from .database import engine, Base
from .deps import get_runner
from .routers import calculators, exports, preferences

logger = logging.getLogger("costflow")

# Create tables (preferences + history key-value store)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="Construction cost estimating calculators with show-the-math explanations",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(calculators.router, prefix="/api")
app.include_router(exports.router, prefix="/api")
app.include_router(preferences.router, prefix="/api")


def _log_computed(payload):
    results = payload.get("results") or {}
    logger.info("Computed %s: total %s", payload.get("calculator"), results.get("total"))


@app.get("/health")
def health():
    return {"status": "ok", "app": "costflow"}


@app.on_event("startup")
async def warm_pricing():
    """Fetch the pricing table once and attach the computed-event logger."""
    runner = app.dependency_overrides.get(get_runner, get_runner)()
    await runner.pricing.ensure_loaded()
    runner.bus.subscribe(COMPUTED, _log_computed)
