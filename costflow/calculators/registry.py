"""
Calculator registry: maps calculator keys to calculator definitions.

The registry is the failure boundary of the pipeline. A calculator that
raises is logged and reported as "no result" rather than taking the
panel (or the API request) down with it.
"""

import logging
from typing import Optional, Protocol

from ..errors import ComputeFailure
from ..pricing import PricingResolver
from ..validation import find_unvalidated_fields
from .concrete import ConcreteCalculator
from .framing import FramingCalculator
from .paint import PaintCalculator
from .roofing import RoofingCalculator

logger = logging.getLogger(__name__)


class CalculatorDefinition(Protocol):
    def compute(self, raw_inputs: dict) -> dict: ...

    def explain(self, state: dict) -> str: ...


BUILTIN_CALCULATORS: dict[str, type] = {
    "concrete": ConcreteCalculator,
    "framing": FramingCalculator,
    "paint": PaintCalculator,
    "roofing": RoofingCalculator,
}


class CalculatorRegistry:

    def __init__(self):
        self._calculators: dict[str, CalculatorDefinition] = {}

    def register_calculator(self, key: str, impl: CalculatorDefinition) -> None:
        """Register (or replace) a calculator. Last write wins."""
        if key in self._calculators:
            logger.debug("Replacing calculator %s", key)
        missing = find_unvalidated_fields(impl)
        if missing:
            logger.warning("Calculator %s reads fields with no validation rule: %s", key, ", ".join(missing))
        self._calculators[key] = impl

    def get_calculator(self, key: str) -> Optional[CalculatorDefinition]:
        return self._calculators.get(key)

    def has_calculator(self, key: str) -> bool:
        return key in self._calculators

    def list_calculators(self) -> list[str]:
        return list(self._calculators.keys())

    def compute(self, key: str, inputs: dict) -> Optional[dict]:
        """
        Run a calculator. Returns the Computation, {"errors": ...} for invalid
        input, or None when the key is unknown or the calculator crashed.
        """
        impl = self._calculators.get(key)
        if impl is None:
            logger.warning("No calculator registered for %s", key)
            return None
        try:
            return impl.compute(inputs)
        except Exception as e:
            failure = ComputeFailure(key, e)
            logger.exception("%s", failure)
            return None

    def explain(self, key: str, state: dict) -> str:
        impl = self._calculators.get(key)
        if impl is None:
            logger.warning("No calculator registered for %s", key)
            return ""
        try:
            return impl.explain(state) or ""
        except Exception:
            logger.exception("Explain failed for %s", key)
            return ""


def register_builtin_calculators(registry: CalculatorRegistry, pricing: PricingResolver) -> CalculatorRegistry:
    """Register concrete, framing, paint and roofing against one pricing resolver."""
    for key, calculator_cls in BUILTIN_CALCULATORS.items():
        registry.register_calculator(key, calculator_cls(pricing))
    return registry
