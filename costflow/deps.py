"""
Process-wide pipeline instances for the HTTP layer.

The app keeps one runner per process; tests replace it through
app.dependency_overrides[get_runner].
"""

import logging
from typing import Optional

from fastapi import HTTPException

from .bus import EventBus
from .calculators.registry import CalculatorRegistry, register_builtin_calculators
from .config import Settings, settings
from .database import SessionLocal
from .pricing import PricingResolver
from .runner import CalculatorPanel, CalculatorRunner
from .store import PreferenceStore

logger = logging.getLogger(__name__)

_runner: Optional[CalculatorRunner] = None


def build_runner(config: Settings = settings, session_factory=SessionLocal) -> CalculatorRunner:
    pricing = PricingResolver(source=config.PRICING_SOURCE or None, timeout=config.PRICING_TIMEOUT_SECONDS)
    registry = register_builtin_calculators(CalculatorRegistry(), pricing)
    store = PreferenceStore(
        session_factory,
        namespace=config.STORAGE_NAMESPACE,
        history_limit=config.HISTORY_LIMIT,
        defaults={"units": config.DEFAULT_UNITS, "region": config.DEFAULT_REGION},
    )
    return CalculatorRunner(registry, pricing, EventBus(), store, config)


def get_runner() -> CalculatorRunner:
    global _runner
    if _runner is None:
        _runner = build_runner()
        logger.info("Calculator runner ready: %s", ", ".join(_runner.registry.list_calculators()))
    return _runner


def get_panel(runner: CalculatorRunner, key: str) -> CalculatorPanel:
    """Panel for key, or 404 when no such calculator is registered."""
    try:
        return runner.panel(key)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Calculator '{key}' not found")
