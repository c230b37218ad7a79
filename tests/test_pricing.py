"""
Pricing resolver.

Tests:
1-4.  Loading: packaged table, fallback on fetch failure, load once
5-8.  Regions: normalization, unknown -> national, replacement pricing
9-12. Price resolution: table x multiplier, overrides, financial rates
"""

import asyncio
import json
import logging

from costflow.errors import ResourceUnavailable
from costflow.pricing import (
    DEFAULT_PRICING,
    PricingResolver,
    normalize_region,
    resolve_price,
)


# --- Test fixtures ---

def _sample_table():
    """Minimal table with one calculator and two regions."""
    return {
        "materials": {"concrete": {"concrete_yd3": 200.0, "rebar_ft": 1.0}},
        "labor": {"concrete": {"labor_hr": 80.0}},
        "equipment": {"concrete": {"truck_flat": 0.0, "pump_flat": 500.0, "crane_flat": 700.0}},
        "financial": {"markup_rate": 0.2, "tax_rate": 0.05},
        "regions": {
            "national": {"label": "National Average", "multiplier": 1.0},
            "ca": {"label": "California", "multiplier": 1.5},
        },
    }


class _CountingFetcher:
    def __init__(self, payload=None, error=None):
        self.calls = 0
        self.payload = payload
        self.error = error

    def __call__(self, source, timeout):
        self.calls += 1
        if self.error:
            raise self.error
        return self.payload


# --- Loading ---

def test_packaged_table_matches_embedded_defaults():
    """The JSON shipped with the package and the embedded fallback are the same table."""
    resolver = PricingResolver()
    table = asyncio.run(resolver.ensure_loaded())
    assert table == DEFAULT_PRICING


def test_fetch_failure_falls_back_to_defaults(caplog):
    """Network errors never raise; the embedded table is used with a warning."""
    fetcher = _CountingFetcher(error=OSError("connection refused"))
    resolver = PricingResolver(source="https://example.invalid/pricing.json", fetcher=fetcher)
    with caplog.at_level(logging.WARNING, logger="costflow.pricing"):
        snapshot = asyncio.run(resolver.get_pricing("concrete", "national"))
    assert snapshot.data["concrete_yd3"] == 145.0
    assert "embedded pricing defaults" in caplog.text


def test_malformed_json_falls_back():
    resolver = PricingResolver(source="bad.json", fetcher=_CountingFetcher(payload="{not json"))
    snapshot = asyncio.run(resolver.get_pricing("concrete"))
    assert snapshot.data["concrete_yd3"] == 145.0


def test_wrong_shape_raises_inside_fetch():
    resolver = PricingResolver(source="x.json", fetcher=_CountingFetcher(payload=json.dumps({"regions": {}})))
    try:
        resolver._fetch_table()
    except ResourceUnavailable as e:
        assert "materials" in str(e)
    else:
        raise AssertionError("expected ResourceUnavailable")


def test_unexpected_fetch_error_falls_back(caplog):
    """Any fetcher exception, not only OS errors, ends in the embedded table."""
    fetcher = _CountingFetcher(error=RuntimeError("incomplete read"))
    resolver = PricingResolver(source="https://example.invalid/pricing.json", fetcher=fetcher)
    with caplog.at_level(logging.WARNING, logger="costflow.pricing"):
        snapshot = asyncio.run(resolver.get_pricing("concrete", "ca"))
    assert snapshot.data["concrete_yd3"] == 145.0
    assert snapshot.multiplier == 1.32
    assert "incomplete read" in caplog.text


def test_bare_multiplier_regions_are_accepted():
    """{"ca": 1.32} is read as a region with that multiplier."""
    table = _sample_table()
    table["regions"] = {"national": 1, "ca": 1.32}
    resolver = PricingResolver(source="remote.json", fetcher=_CountingFetcher(payload=json.dumps(table)))
    snapshot = asyncio.run(resolver.get_pricing("concrete", "ca"))
    assert snapshot.multiplier == 1.32
    assert snapshot.data["concrete_yd3"] == 200.0
    assert {r["code"]: r["label"] for r in resolver.list_regions()}["ca"] == "ca"


def test_non_object_section_falls_back(caplog):
    table = _sample_table()
    table["labor"] = ["oops"]
    resolver = PricingResolver(source="remote.json", fetcher=_CountingFetcher(payload=json.dumps(table)))
    with caplog.at_level(logging.WARNING, logger="costflow.pricing"):
        snapshot = asyncio.run(resolver.get_pricing("concrete", "national"))
    assert snapshot.data["concrete_yd3"] == 145.0
    assert "'labor' must be an object" in caplog.text


def test_non_object_region_entry_falls_back():
    table = _sample_table()
    table["regions"]["ca"] = ["1.5"]
    resolver = PricingResolver(source="remote.json", fetcher=_CountingFetcher(payload=json.dumps(table)))
    snapshot = asyncio.run(resolver.get_pricing("concrete", "ca"))
    assert snapshot.data["concrete_yd3"] == 145.0
    assert snapshot.multiplier == 1.32


def test_table_loaded_once_and_snapshots_are_stable():
    """Repeated calls with the same arguments give equal snapshots and one fetch."""
    fetcher = _CountingFetcher(payload=json.dumps(_sample_table()))
    resolver = PricingResolver(source="remote.json", fetcher=fetcher)

    async def _twice():
        first = await resolver.get_pricing("concrete", "ca")
        second = await resolver.get_pricing("concrete", "ca")
        return first, second

    first, second = asyncio.run(_twice())
    assert first == second
    assert first.multiplier == 1.5
    assert first.data["concrete_yd3"] == 200.0
    assert fetcher.calls == 1


# --- Regions ---

def test_normalize_region():
    assert normalize_region(None) == "national"
    assert normalize_region("") == "national"
    assert normalize_region("default") == "national"
    assert normalize_region("US-Default") == "national"
    assert normalize_region(" West Coast ") == "west-coast"
    assert normalize_region("west_coast") == "west-coast"


def test_unknown_region_uses_national_multiplier():
    resolver = PricingResolver()
    snapshot = resolver.get_pricing_sync("concrete", "atlantis")
    assert snapshot.region == "national"
    assert snapshot.multiplier == 1.0


def test_region_multiplier_applied_at_resolution():
    resolver = PricingResolver()
    snapshot = resolver.get_pricing_sync("concrete", "ca")
    assert snapshot.multiplier == 1.32
    # snapshot carries base prices; the multiplier is applied per field
    assert snapshot.data["concrete_yd3"] == 145.0
    price = resolve_price(snapshot, "concrete_yd3")
    assert round(price.value, 2) == 191.40
    assert price.source == "table"


def test_region_replacement_pricing():
    """Hawaii's replacement prices are used as-is; other keys still get the multiplier."""
    resolver = PricingResolver()
    snapshot = resolver.get_pricing_sync("concrete", "hi")
    assert snapshot.data["concrete_yd3"] == 185.0
    assert snapshot.multiplier == 1.35
    assert set(snapshot.regional) == {"concrete_yd3", "rebar_ft"}

    concrete = resolve_price(snapshot, "concrete_yd3")
    assert concrete.value == 185.0
    assert concrete.source == "region"

    labor = resolve_price(snapshot, "labor_hr")
    assert round(labor.value, 2) == round(65.0 * 1.35, 2)
    assert labor.source == "table"

    assert resolve_price(snapshot, "concrete_yd3", override="200").source == "override"


def test_list_regions():
    regions = {r["code"]: r for r in PricingResolver().list_regions()}
    assert regions["national"]["multiplier"] == 1.0
    assert regions["tx"]["label"] == "Texas"


# --- Price resolution ---

def test_override_wins_and_is_tagged():
    snapshot = PricingResolver().get_pricing_sync("concrete", "ca")
    price = resolve_price(snapshot, "concrete_yd3", override="160")
    assert price.value == 160.0
    assert price.source == "override"


def test_zero_or_blank_override_uses_table():
    snapshot = PricingResolver().get_pricing_sync("concrete")
    assert resolve_price(snapshot, "concrete_yd3", override=0).source == "table"
    assert resolve_price(snapshot, "concrete_yd3", override="").value == 145.0


def test_missing_calculator_gives_empty_snapshot(caplog):
    resolver = PricingResolver()
    with caplog.at_level(logging.WARNING, logger="costflow.pricing"):
        snapshot = resolver.get_pricing_sync("hvac", "ca")
    assert snapshot.data == {}
    assert snapshot.multiplier == 1.32
    assert "Missing pricing config for hvac" in caplog.text
    assert round(resolve_price(snapshot, "unit_price", fallback=10).value, 2) == 13.2


def test_financial_rates_not_region_adjusted():
    snapshot = PricingResolver().get_pricing_sync("concrete", "ny")
    assert snapshot.rate("markup_rate") == 0.10
    assert snapshot.rate("tax_rate") == 0.0825


def test_override_pricing_replaces_table():
    resolver = PricingResolver()
    resolver.override_pricing(_sample_table())
    snapshot = resolver.get_pricing_sync("concrete", "ca")
    assert snapshot.data["concrete_yd3"] == 200.0
    assert snapshot.multiplier == 1.5


def test_partial_override_keeps_other_sections():
    """Sections missing from the override still come from the defaults."""
    resolver = PricingResolver()
    resolver.override_pricing({"financial": {"markup_rate": 0.25, "tax_rate": 0.0}})
    snapshot = resolver.get_pricing_sync("paint")
    assert snapshot.data["gallon_standard"] == 34.0
    assert snapshot.rate("markup_rate") == 0.25
