"""
Abstract base class for all trade calculators.

Input: RawInputs dict (form values, strings/booleans)
Output: Computation dict {calculator, inputs, pricing, results, price_sources, summary}
        or {"errors": {field: message}} when validation fails
"""

import logging
from abc import ABC, abstractmethod

from ..pricing import PriceField, PricingResolver, PricingSnapshot, resolve_price
from ..validation import FieldRule, parse_boolean, validate
from .units import format_currency, format_number, parse_number, round_to

logger = logging.getLogger(__name__)


class BaseCalculator(ABC):
    """All trade calculators inherit from this."""

    key: str = ""
    title: str = ""

    # field name -> FieldRule, in form order
    SCHEMA: dict[str, FieldRule] = {}
    # values substituted for blank optional fields
    DEFAULTS: dict = {}
    # every raw field compute() reads; must be covered by SCHEMA
    CONSUMED_FIELDS: tuple = ()

    def __init__(self, pricing: PricingResolver):
        self.pricing = pricing

    # --- Contract ---

    def compute(self, raw_inputs: dict) -> dict:
        """Coerce -> validate -> calculate. Never partially computes invalid input."""
        raw_inputs = raw_inputs or {}
        values = self.coerce(raw_inputs)
        validation = validate(values, self.SCHEMA)
        if not validation.valid:
            return {"errors": validation.errors}
        # region is a pricing selector, not a formula input; unknown codes fall back to national
        snapshot = self.pricing.get_pricing_sync(self.key, raw_inputs.get("region"))
        return self.calculate(values, snapshot)

    @abstractmethod
    def calculate(self, values: dict, pricing: PricingSnapshot) -> dict:
        """
        Takes validated, coerced values and a pricing snapshot.
        Pure: identical inputs + snapshot give identical results.
        """

    @abstractmethod
    def explain(self, state: dict) -> str:
        """Step-by-step math rebuilt only from state['inputs'] / ['results'] / ['price_sources']."""

    # --- Helper methods for all calculators ---

    def coerce(self, raw: dict) -> dict:
        """
        Convert raw form values to typed values where they parse, substituting
        DEFAULTS for blank optional fields. Unparseable values are left as-is
        so validation can report them.
        """
        values = {}
        for name, rule in self.SCHEMA.items():
            value = raw.get(name)
            if isinstance(value, str):
                value = value.strip()
            if (value is None or value == "") and name in self.DEFAULTS:
                value = self.DEFAULTS[name]
            if value is None or value == "":
                values[name] = None
                continue
            if rule.type == "number":
                number = parse_number(value)
                values[name] = number if number is not None else value
            elif rule.type == "boolean":
                flag = parse_boolean(value)
                values[name] = flag if flag is not None else value
            else:
                values[name] = str(value)
        return values

    def price(self, pricing: PricingSnapshot, key: str, override=None,
              fallback: float = 0.0) -> PriceField:
        """Resolve one unit price, honoring a non-zero user override."""
        return resolve_price(pricing, key, override=override, fallback=fallback)

    def apply_financials(self, subtotal: float, pricing: PricingSnapshot,
                         apply_markup: bool, apply_tax: bool) -> dict:
        """Markup on subtotal, then tax on (subtotal + markup). Unrounded."""
        markup_rate = pricing.rate("markup_rate") if apply_markup else 0.0
        markup = subtotal * markup_rate
        tax_rate = pricing.rate("tax_rate") if apply_tax else 0.0
        tax = (subtotal + markup) * tax_rate
        return {
            "markup_rate": markup_rate,
            "markup": markup,
            "tax_rate": tax_rate,
            "tax": tax,
            "total": subtotal + markup + tax,
        }

    def make_computation(self, inputs: dict, pricing: PricingSnapshot, results: dict,
                         price_fields: list, summary: str = "") -> dict:
        """Build the Computation dict returned by compute()."""
        return {
            "calculator": self.key,
            "inputs": inputs,
            "pricing": pricing.model_dump(),
            "results": results,
            "price_sources": {p.key: p.source for p in price_fields},
            "summary": summary,
        }

    @staticmethod
    def money(value: float) -> float:
        return round_to(value, 2)

    @staticmethod
    def price_note(sources: dict, key: str, multiplier) -> str:
        """'(override)', '(regional price)' or '(table × region 1.32)' for the math text."""
        if sources.get(key) == "override":
            return "(override)"
        if sources.get(key) == "region":
            return "(regional price)"
        return f"(table × region {format_number(multiplier, 3)})"

    @staticmethod
    def financial_lines(results: dict) -> list:
        """Shared Subtotal / Markup / Tax / Total block for explain()."""
        markup_pct = format_number(results.get("markup_rate", 0) * 100, 1)
        tax_pct = format_number(results.get("tax_rate", 0) * 100, 2)
        return [
            f"Subtotal = {format_currency(results.get('subtotal', 0))}",
            "",
            f"Markup ({markup_pct}%) = {format_currency(results.get('markup', 0))}",
            "",
            f"Tax ({tax_pct}% of subtotal + markup) = {format_currency(results.get('tax', 0))}",
            "",
            f"**Total = {format_currency(results.get('total', 0))}**",
        ]
