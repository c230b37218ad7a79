"""
Runner / wiring layer: one CalculatorPanel per calculator on the page.

A panel holds the form values, inline errors and output slots for a single
calculator and moves through

    IDLE -> VALIDATING -> (INVALID | COMPUTED) -> IDLE

Nothing is computed automatically: field edits only validate that field, and
calculate() is the single entry point that runs the registry. Successful
calculations land in the runner's per-type slot and the global most-recent
slot, are pushed to the bounded history, and are announced on the bus.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from .bus import COMPUTED, RESET, EventBus
from .calculators.registry import CalculatorRegistry
from .config import Settings, settings as default_settings
from .pricing import PricingResolver, PricingSnapshot
from .store import PreferenceStore
from .validation import is_blank, validate, validate_field

logger = logging.getLogger(__name__)

ERROR_SUMMARY_HEADING = "We need a quick fix:"
CALCULATION_FAILED = "Calculation failed. Check your inputs and try again."


class PanelState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    INVALID = "invalid"
    COMPUTED = "computed"


class CalculationRecord(BaseModel):
    type: str
    title: str
    inputs: dict[str, Any] = {}
    results: dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    math: str = ""
    summary: str = ""


class PanelView(BaseModel):
    calculator: str
    title: str
    state: PanelState
    values: dict[str, Any] = {}
    field_errors: dict[str, str] = {}
    error_summary: list[str] = []
    results: Optional[dict[str, Any]] = None
    summary: str = ""
    math: str = ""
    notice: Optional[str] = None
    calculate_disabled: bool = True
    exports_enabled: bool = False
    region: str
    pricing: Optional[dict[str, Any]] = None


class CalculatorPanel:

    def __init__(self, runner: "CalculatorRunner", key: str):
        self.runner = runner
        self.key = key
        self.calculator = runner.registry.get_calculator(key)
        self.title = getattr(self.calculator, "title", "") or key.replace("_", " ").title()
        self.schema = getattr(self.calculator, "SCHEMA", None) or {}
        self.defaults = getattr(self.calculator, "DEFAULTS", None) or {}

        self.state = PanelState.IDLE
        self.values: dict[str, Any] = {}
        self.field_errors: dict[str, str] = {}
        self.error_summary: list[str] = []
        self.results: Optional[dict] = None
        self.summary = ""
        self.math = ""
        self.notice: Optional[str] = None
        self.record: Optional[CalculationRecord] = None
        self.snapshot: Optional[PricingSnapshot] = None

        prefs = runner.store.get_preferences()
        self.region = runner.pricing.resolve_region(prefs.get("region"))
        self._fill_defaults(prefs)

    def _fill_defaults(self, prefs: dict) -> None:
        self.values = {name: self.defaults.get(name) for name in self.schema}
        if "units" in self.schema and prefs.get("units"):
            self.values["units"] = prefs["units"]

    # --- Derived state ---

    @property
    def calculate_disabled(self) -> bool:
        """True while any required field is blank or any field shows an error."""
        if self.field_errors:
            return True
        return any(rule.required and is_blank(self.values.get(name)) for name, rule in self.schema.items())

    @property
    def exports_enabled(self) -> bool:
        return self.state == PanelState.COMPUTED and self.record is not None

    def _render_errors(self, errors: dict) -> None:
        self.field_errors = dict(errors)
        self.error_summary = [
            "%s: %s" % (getattr(self.schema.get(name), "label", None) or name, message)
            for name, message in errors.items()
        ]

    def _clear_outputs(self) -> None:
        self.results = None
        self.summary = ""
        self.math = ""
        self.notice = None
        self.record = None

    # --- Events ---

    def set_field(self, name: str, value) -> Optional[str]:
        """Update one field and validate only that field. Returns its error, if any."""
        rule = self.schema.get(name)
        if rule is None:
            raise KeyError(name)
        if self.state in (PanelState.INVALID, PanelState.COMPUTED):
            self.state = PanelState.IDLE
        self.values[name] = value
        message = validate_field(name, value, rule)
        errors = {k: v for k, v in self.field_errors.items() if k != name}
        if message:
            errors[name] = message
        self._render_errors(errors)
        self.notice = None
        return message

    def set_fields(self, values: dict) -> dict:
        return {name: self.set_field(name, value) for name, value in values.items()}

    def calculate(self) -> Optional[CalculationRecord]:
        """Run the calculator on the current values. Never runs while the action is disabled."""
        if self.calculate_disabled:
            self._render_errors(validate(self.values, self.schema).errors or self.field_errors)
            self.state = PanelState.INVALID
            logger.debug("Calculate blocked for %s: %s", self.key, list(self.field_errors))
            return None

        self.state = PanelState.VALIDATING
        self.notice = None
        inputs = {**self.values, "region": self.region}
        computation = self.runner.registry.compute(self.key, inputs)

        if computation is None:
            self._clear_outputs()
            self.notice = CALCULATION_FAILED
            self.state = PanelState.IDLE
            return None

        if computation.get("errors"):
            self._render_errors(computation["errors"])
            self.state = PanelState.INVALID
            return None

        self._render_errors({})
        self.results = computation.get("results") or {}
        self.summary = computation.get("summary", "")
        self.math = self.runner.registry.explain(self.key, computation)
        if computation.get("pricing"):
            self.snapshot = PricingSnapshot(**computation["pricing"])

        self.record = CalculationRecord(
            type=self.key,
            title=self.title,
            inputs=computation.get("inputs") or {},
            results=self.results,
            math=self.math,
            summary=self.summary,
        )
        self.state = PanelState.COMPUTED
        self.runner._store_calculation(self.record)
        self.runner.bus.publish(COMPUTED, {
            "calculator": self.key,
            "inputs": self.record.inputs,
            "results": self.record.results,
        })
        return self.record

    def reset(self) -> None:
        self._fill_defaults(self.runner.store.get_preferences())
        self._render_errors({})
        self._clear_outputs()
        self.runner._clear_slot(self.key)
        self.state = PanelState.IDLE
        self.runner.bus.publish(RESET, {"calculator": self.key})

    async def change_region(self, region) -> PricingSnapshot:
        """Switch region, persist it as the preferred region and fetch fresh pricing."""
        self.region = self.runner.pricing.resolve_region(region)
        self.runner.store.set_preference("region", self.region)
        self.snapshot = await self.runner.pricing.get_pricing(self.key, self.region)
        if self.state == PanelState.COMPUTED:
            self.notice = "Region changed. Calculate again to refresh the estimate."
        return self.snapshot

    def view(self) -> PanelView:
        return PanelView(
            calculator=self.key,
            title=self.title,
            state=self.state,
            values=dict(self.values),
            field_errors=dict(self.field_errors),
            error_summary=list(self.error_summary),
            results=self.results,
            summary=self.summary,
            math=self.math,
            notice=self.notice,
            calculate_disabled=self.calculate_disabled,
            exports_enabled=self.exports_enabled,
            region=self.region,
            pricing=self.snapshot.model_dump() if self.snapshot else None,
        )


class CalculatorRunner:
    """The page: owns the panels, the calculation slots and the collaborators they share."""

    def __init__(self, registry: CalculatorRegistry, pricing: PricingResolver, bus: EventBus,
                 store: PreferenceStore, settings: Settings = None):
        self.registry = registry
        self.pricing = pricing
        self.bus = bus
        self.store = store
        self.settings = settings or default_settings
        self._panels: dict[str, CalculatorPanel] = {}
        self._slots: dict[str, CalculationRecord] = {}
        self._latest: Optional[CalculationRecord] = None

    def panel(self, key: str) -> CalculatorPanel:
        if key not in self._panels:
            if not self.registry.has_calculator(key):
                raise KeyError(key)
            self._panels[key] = CalculatorPanel(self, key)
        return self._panels[key]

    def last_calculation(self, key: str = None) -> Optional[CalculationRecord]:
        """Most recent record for one calculator, or across all of them."""
        if key is None:
            return self._latest
        return self._slots.get(key)

    def _store_calculation(self, record: CalculationRecord) -> None:
        self._slots[record.type] = record
        self._latest = record
        self.store.remember_calculation(record)

    def _clear_slot(self, key: str) -> None:
        self._slots.pop(key, None)
