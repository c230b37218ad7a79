"""
Regional pricing resolver with fallback chain:
1. Pricing table fetched once per process from PRICING_SOURCE
   (http(s) URL or local path; defaults to data/pricing.base.json)
2. DEFAULT_PRICING from this file (embedded copy of the base table)

The table has five sections: materials, labor, equipment, financial, regions.
A snapshot for (calculator, region) flattens the calculator's entries from
materials/labor/equipment plus the shared financial rates, and carries the
region multiplier separately. Region replacement prices are listed in
`regional` and are never multiplied again. Multiplying and rounding happen
at the point of use (resolve_price + the calculator), never here.
"""

import asyncio
import copy
import json
import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Callable, Literal, Optional

from pydantic import BaseModel

from .calculators.units import parse_number
from .errors import ResourceUnavailable

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
DEFAULT_SOURCE = str(DATA_DIR / "pricing.base.json")

DEFAULT_REGION = "national"
REGION_ALIASES = {"default": DEFAULT_REGION, "us-default": DEFAULT_REGION, "us": DEFAULT_REGION}
PRICE_SECTIONS = ("materials", "labor", "equipment")
FINANCIAL_KEYS = ("markup_rate", "tax_rate")

# FALLBACK TABLE: used when the pricing source cannot be loaded.
# Keep in sync with data/pricing.base.json.
DEFAULT_PRICING = {
    "materials": {
        "concrete": {"concrete_yd3": 145.0, "rebar_ft": 0.85},
        "framing": {
            "stud_8ft": 4.25,
            "stud_10ft": 5.40,
            "plate_lf": 0.65,
            "sheathing_sqft": 1.60,
            "hardware_sqft": 0.55,
        },
        "paint": {
            "gallon_builder": 22.0,
            "gallon_standard": 34.0,
            "gallon_premium": 48.0,
            "primer_gallon": 24.0,
        },
        "roofing": {
            "asphalt_shingles_sq": 85.0,
            "architectural_shingles_sq": 125.0,
            "metal_panels_sq": 200.0,
            "metal_shingles_sq": 280.0,
            "tile_clay_sq": 350.0,
            "tile_concrete_sq": 180.0,
            "slate_sq": 800.0,
            "wood_shingles_sq": 250.0,
            "underlayment_felt_sq": 25.0,
            "underlayment_synthetic_sq": 45.0,
            "underlayment_ice_shield_sq": 85.0,
            "flashing_sq": 15.0,
        },
    },
    "labor": {
        "concrete": {"labor_hr": 65.0},
        "framing": {"labor_sqft": 3.25},
        "paint": {"labor_hr": 55.0},
        "roofing": {
            "install_asphalt_shingles_sq": 65.0,
            "install_architectural_shingles_sq": 75.0,
            "install_metal_panels_sq": 85.0,
            "install_metal_shingles_sq": 120.0,
            "install_tile_clay_sq": 150.0,
            "install_tile_concrete_sq": 110.0,
            "install_slate_sq": 200.0,
            "install_wood_shingles_sq": 130.0,
            "tear_off_sq": 45.0,
        },
    },
    "equipment": {
        "concrete": {"truck_flat": 0.0, "pump_flat": 425.0, "crane_flat": 650.0},
        "roofing": {"permit_flat": 150.0, "dumpster_standard": 300.0, "dumpster_heavy": 400.0},
    },
    "financial": {"markup_rate": 0.10, "tax_rate": 0.0825},
    "regions": {
        "national": {"label": "National Average", "multiplier": 1.0},
        "nc": {"label": "North Carolina", "multiplier": 0.94},
        "tx": {"label": "Texas", "multiplier": 0.90},
        "ca": {"label": "California", "multiplier": 1.32},
        "ny": {"label": "New York", "multiplier": 1.22},
        "fl": {"label": "Florida", "multiplier": 1.05},
        "midwest": {"label": "Midwest", "multiplier": 0.88},
        "west-coast": {"label": "West Coast", "multiplier": 1.28},
        "hi": {
            "label": "Hawaii",
            "multiplier": 1.35,
            "pricing": {
                "concrete": {"concrete_yd3": 185.0, "rebar_ft": 1.10},
                "roofing": {"dumpster_standard": 550.0, "dumpster_heavy": 700.0},
            },
        },
    },
}


class PricingSnapshot(BaseModel):
    calculator: str
    region: str = DEFAULT_REGION
    data: dict[str, float] = {}
    multiplier: float = 1.0
    # keys taken from the region's replacement pricing; already local prices
    regional: list[str] = []

    def rate(self, key: str, default: float = 0.0) -> float:
        """Financial rates (markup, tax); never region-adjusted."""
        return float(self.data.get(key, default))


class PriceField(BaseModel):
    key: str
    value: float  # unrounded
    source: Literal["table", "region", "override"] = "table"


def normalize_region(region) -> str:
    """'West Coast' -> 'west-coast'; blank, aliases and unknown codes resolve later to national."""
    if region is None:
        return DEFAULT_REGION
    key = str(region).strip().lower().replace("_", "-").replace(" ", "-")
    if not key:
        return DEFAULT_REGION
    return REGION_ALIASES.get(key, key)


def resolve_price(snapshot: PricingSnapshot, key: str, override=None,
                  fallback: float = 0.0) -> PriceField:
    """
    Unit price for one pricing key.
    A non-zero override wins and is tagged 'override'. A region replacement
    price is used as-is, tagged 'region'. Otherwise base value × region
    multiplier, tagged 'table'.
    """
    override_value = parse_number(override)
    if override_value:
        return PriceField(key=key, value=override_value, source="override")
    base = snapshot.data.get(key, fallback)
    if key in snapshot.regional:
        return PriceField(key=key, value=float(base), source="region")
    return PriceField(key=key, value=float(base) * snapshot.multiplier, source="table")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_table(table, source: str) -> dict:
    """
    Raise ResourceUnavailable unless the table has the expected shape.
    Region entries given as a bare multiplier ({"ca": 1.32}) are expanded
    to {"label", "multiplier"} in place.
    """
    if not isinstance(table, dict) or not isinstance(table.get("materials"), dict):
        raise ResourceUnavailable(source, "missing 'materials' section")
    for section in PRICE_SECTIONS:
        entries = table.get(section) or {}
        if not isinstance(entries, dict):
            raise ResourceUnavailable(source, f"'{section}' must be an object")
        for calculator, prices in entries.items():
            if not isinstance(prices, dict):
                raise ResourceUnavailable(source, f"'{section}.{calculator}' must be an object")
    if not isinstance(table.get("financial") or {}, dict):
        raise ResourceUnavailable(source, "'financial' must be an object")

    regions = table.get("regions") or {}
    if not isinstance(regions, dict):
        raise ResourceUnavailable(source, "'regions' must be an object")
    for code, entry in regions.items():
        if _is_number(entry):
            regions[code] = {"label": code, "multiplier": float(entry)}
        elif not isinstance(entry, dict):
            raise ResourceUnavailable(source, f"region '{code}' must be an object or a multiplier")
        elif not isinstance(entry.get("pricing") or {}, dict):
            raise ResourceUnavailable(source, f"region '{code}' pricing must be an object")
    return table


def _read_source(source: str, timeout: float) -> str:
    """Default fetcher: HTTP GET for URLs, file read otherwise."""
    if source.startswith(("http://", "https://")):
        req = urllib.request.Request(source, headers={"Accept": "application/json"})
        with urllib.request.urlopen(req, timeout=timeout) as response:
            if response.status != 200:
                raise ResourceUnavailable(source, f"HTTP {response.status}")
            return response.read().decode("utf-8")
    with open(source, encoding="utf-8") as f:
        return f.read()


class PricingResolver:
    """
    Process-wide pricing cache.

    The table is loaded at most once (first get_pricing call); failures fall
    back to DEFAULT_PRICING with a warning and are never raised. Region
    multipliers are cached per normalized region until override_pricing().
    """

    def __init__(self, source: Optional[str] = None, timeout: float = 10.0,
                 fetcher: Optional[Callable[[str, float], str]] = None):
        self.source = source or DEFAULT_SOURCE
        self.timeout = timeout
        self._fetcher = fetcher or _read_source
        self._table: Optional[dict] = None
        self._loaded = False
        self._region_cache: dict[str, float] = {}
        self._load_lock = asyncio.Lock()

    # --- Loading ---

    def _fetch_table(self) -> dict:
        try:
            raw = self._fetcher(self.source, self.timeout)
            table = json.loads(raw)
        except ResourceUnavailable:
            raise
        except (OSError, urllib.error.URLError) as e:
            raise ResourceUnavailable(self.source, str(e)) from e
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
            raise ResourceUnavailable(self.source, f"malformed JSON: {e}") from e
        except Exception as e:
            # truncated responses (http.client.IncompleteRead) and custom fetchers
            raise ResourceUnavailable(self.source, f"{type(e).__name__}: {e}") from e
        return check_table(table, self.source)

    async def ensure_loaded(self) -> dict:
        """Fetch the table once per process. Never raises."""
        if self._loaded:
            return self._base()
        async with self._load_lock:
            if self._loaded:
                return self._base()
            try:
                table = await asyncio.to_thread(self._fetch_table)
                logger.info("Loaded pricing table from %s", self.source)
            except Exception as e:
                logger.warning("%s; using embedded pricing defaults", e)
                table = copy.deepcopy(DEFAULT_PRICING)
            self._table = table
            self._loaded = True
            self._region_cache.clear()
        return self._base()

    def _base(self) -> dict:
        return self._table if self._table is not None else DEFAULT_PRICING

    # --- Regions ---

    def _regions(self) -> dict:
        regions = self._base().get("regions")
        return regions if isinstance(regions, dict) else DEFAULT_PRICING["regions"]

    def resolve_region(self, region) -> str:
        key = normalize_region(region)
        return key if key in self._regions() else DEFAULT_REGION

    def region_multiplier(self, region) -> float:
        key = self.resolve_region(region)
        if key not in self._region_cache:
            entry = self._regions().get(key) or {}
            multiplier = parse_number(entry.get("multiplier"))
            self._region_cache[key] = multiplier if multiplier else 1.0
        return self._region_cache[key]

    def list_regions(self) -> list[dict]:
        return [
            {
                "code": code,
                "label": entry.get("label", code),
                "multiplier": self.region_multiplier(code),
            }
            for code, entry in self._regions().items()
        ]

    # --- Snapshots ---

    def _snapshot(self, calculator: str, region) -> PricingSnapshot:
        table = self._base()
        region_key = self.resolve_region(region)
        multiplier = self.region_multiplier(region_key)

        data = {}
        for section in PRICE_SECTIONS:
            entries = (table.get(section) or {}).get(calculator)
            if isinstance(entries, dict):
                data.update(entries)
        if not data:
            logger.warning("Missing pricing config for %s", calculator)
            return PricingSnapshot(calculator=calculator, region=region_key, multiplier=multiplier)

        financial = table.get("financial") or DEFAULT_PRICING["financial"]
        for key in FINANCIAL_KEYS:
            if key in financial:
                data[key] = financial[key]

        regional = []
        replacement = (self._regions().get(region_key) or {}).get("pricing") or {}
        if isinstance(replacement.get(calculator), dict):
            data.update(replacement[calculator])
            regional = list(replacement[calculator])

        prices = {k: parse_number(v) for k, v in data.items()}
        prices = {k: v for k, v in prices.items() if v is not None}
        return PricingSnapshot(
            calculator=calculator,
            region=region_key,
            data=prices,
            multiplier=multiplier,
            regional=[k for k in regional if k in prices],
        )

    async def get_pricing(self, calculator: str, region=DEFAULT_REGION) -> PricingSnapshot:
        """Snapshot after making sure the table has been fetched (may do I/O once)."""
        await self.ensure_loaded()
        return self._snapshot(calculator, region)

    def get_pricing_sync(self, calculator: str, region=DEFAULT_REGION) -> PricingSnapshot:
        """Snapshot from whatever is loaded already, or the embedded defaults. No I/O."""
        return self._snapshot(calculator, region)

    def override_pricing(self, table: dict) -> None:
        """Replace the whole base table in memory (sections merged over the defaults).
        A malformed table raises ResourceUnavailable and leaves the current one in place."""
        merged = copy.deepcopy(DEFAULT_PRICING)
        merged.update(copy.deepcopy(table))
        self._table = check_table(merged, "override")
        self._loaded = True
        self._region_cache.clear()
        logger.info("Pricing table overridden (%d sections)", len(table))
