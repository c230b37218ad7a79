# Unit conversion constants: US customary with metric display support

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import math

INCHES_PER_FOOT = 12.0
FEET_PER_YARD = 3.0
SQFT_PER_SQYD = 9.0
CUFT_PER_CUYD = 27.0
SQFT_PER_ROOFING_SQUARE = 100.0

FEET_PER_METER = 3.280839895
INCHES_PER_CM = 0.3937007874
CUBIC_METERS_PER_CUYD = 0.764554858

UNIT_SYSTEMS = {
    "imperial": {"length": "ft", "thickness": "in", "area": "sq ft", "volume": "yd³"},
    "metric": {"length": "m", "thickness": "cm", "area": "m²", "volume": "m³"},
}


def parse_number(value):
    """
    Parse a numeric form value. Tolerates thousands separators, '$' and
    surrounding whitespace. Returns None for blank or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip().replace(",", "").replace("$", "")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def round_to(value: float, precision: int = 2) -> float:
    """Round half away from zero (matches how estimates are read off a calculator)."""
    try:
        quantum = Decimal(1).scaleb(-precision)
        return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        return 0.0


def ceil_to(value: float, step: float) -> float:
    """Round up to the next multiple of step (e.g. 0.1 gal)."""
    if step <= 0:
        return value
    return round_to(math.ceil(round_to(value / step, 6)) * step, 6)


def inches_to_feet(inches: float) -> float:
    return inches / INCHES_PER_FOOT


def feet_to_inches(feet: float) -> float:
    return feet * INCHES_PER_FOOT


def feet_to_yards(feet: float) -> float:
    return feet / FEET_PER_YARD


def square_feet(length_ft: float, width_ft: float) -> float:
    return length_ft * width_ft


def square_feet_to_square_yards(sqft: float) -> float:
    return sqft / SQFT_PER_SQYD


def cubic_feet(length_ft: float, width_ft: float, depth_ft: float) -> float:
    return length_ft * width_ft * depth_ft


def cubic_feet_to_cubic_yards(cuft: float) -> float:
    return cuft / CUFT_PER_CUYD


def slab_volume_ft3(length_ft: float, width_ft: float, thickness_in: float) -> float:
    """Volume of a rectangular slab with thickness given in inches."""
    return cubic_feet(length_ft, width_ft, inches_to_feet(thickness_in))


def apply_waste(quantity: float, waste_pct: float) -> float:
    """Add a percentage allowance (5 -> +5%). Not rounded."""
    return quantity * (1 + waste_pct / 100.0)


def to_feet(value: float, unit: str = "ft") -> float:
    """Convert a length in ft or m to feet."""
    if unit == "m":
        return value * FEET_PER_METER
    return value


def to_inches(value: float, unit: str = "in") -> float:
    """Convert a thickness in in or cm to inches."""
    if unit == "cm":
        return value * INCHES_PER_CM
    return value


def convert_volume_for_display(cubic_yards: float, units: str = "imperial") -> float:
    """yd³ stays yd³ for imperial; metric shows m³."""
    if units == "metric":
        return cubic_yards * CUBIC_METERS_PER_CUYD
    return cubic_yards


def format_number(value, max_decimals: int = 2) -> str:
    """1234.5 -> '1,234.5' (trailing zeros trimmed)."""
    try:
        text = f"{round_to(float(value), max_decimals):,.{max_decimals}f}"
    except (ValueError, TypeError):
        return str(value)
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_currency(amount) -> str:
    """Format a number as $X,XXX.XX"""
    try:
        return f"${round_to(float(amount), 2):,.2f}"
    except (ValueError, TypeError):
        return "$0.00"
