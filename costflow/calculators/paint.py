"""
Paint & coatings calculator.

Paintable area = wall area − openings. Gallons = area × coats ÷ coverage,
rounded up to 0.1 gal; coverage comes from the surface texture unless the user
enters one. Primer at 400 sq ft/gal. Labor hours = area ÷ productivity.
"""

from ..pricing import PricingSnapshot
from ..validation import FieldRule
from .base import BaseCalculator
from .units import ceil_to, format_currency, format_number, round_to

# sq ft per gallon
COVERAGE_BY_TEXTURE = {
    "smooth": 350,
    "medium": 300,
    "heavy": 250,
}
PRIMER_COVERAGE = 400
GALLON_STEP = 0.1

QUALITY_PRICE_KEYS = {
    "builder": "gallon_builder",
    "standard": "gallon_standard",
    "premium": "gallon_premium",
}


class PaintCalculator(BaseCalculator):

    key = "paint"
    title = "Paint & Coatings"

    SCHEMA = {
        "wall_area": FieldRule(type="number", min=50, max=100000, required=True, label="Wall area"),
        "openings": FieldRule(type="number", min=0, label="Openings"),
        "coats": FieldRule(type="number", min=1, max=4, label="Coats"),
        "texture": FieldRule(type="enum", options=list(COVERAGE_BY_TEXTURE), label="Texture"),
        "quality": FieldRule(type="enum", options=list(QUALITY_PRICE_KEYS), label="Paint quality"),
        "include_primer": FieldRule(type="boolean", label="Include primer"),
        "coverage": FieldRule(type="number", min=0, max=1000, label="Coverage per gallon"),
        "material_rate": FieldRule(type="number", min=0, label="Paint price per gallon"),
        "labor_rate": FieldRule(type="number", min=0, label="Labor rate"),
        "productivity": FieldRule(type="number", min=25, max=1000, label="Productivity"),
        "apply_markup": FieldRule(type="boolean", label="Apply markup"),
        "apply_tax": FieldRule(type="boolean", label="Apply tax"),
    }

    DEFAULTS = {
        "openings": 0.0,
        "coats": 2.0,
        "texture": "medium",
        "quality": "standard",
        "include_primer": False,
        "productivity": 250.0,
        "apply_markup": False,
        "apply_tax": False,
    }

    CONSUMED_FIELDS = tuple(SCHEMA)

    def calculate(self, values: dict, pricing: PricingSnapshot) -> dict:
        net_area = max(0.0, values["wall_area"] - values["openings"])
        coats = values["coats"]

        if values.get("coverage"):
            coverage = values["coverage"]
            coverage_source = "override"
        else:
            coverage = COVERAGE_BY_TEXTURE.get(values["texture"], 300)
            coverage_source = "texture"

        gallons = ceil_to((net_area * coats) / coverage, GALLON_STEP)
        primer_gallons = ceil_to(net_area / PRIMER_COVERAGE, GALLON_STEP) if values["include_primer"] else 0.0

        paint_key = QUALITY_PRICE_KEYS.get(values["quality"], "gallon_standard")
        paint_price = self.price(pricing, paint_key, values.get("material_rate"))
        primer_price = self.price(pricing, "primer_gallon")
        labor_price = self.price(pricing, "labor_hr", values.get("labor_rate"))

        paint_cost = gallons * paint_price.value
        primer_cost = primer_gallons * primer_price.value
        material_cost = paint_cost + primer_cost
        labor_hours = net_area / values["productivity"]
        labor_cost = labor_hours * labor_price.value
        subtotal = material_cost + labor_cost
        financials = self.apply_financials(
            subtotal, pricing, values["apply_markup"], values["apply_tax"])

        inputs = {
            "wall_area": values["wall_area"],
            "openings": values["openings"],
            "coats": coats,
            "texture": values["texture"],
            "quality": values["quality"],
            "include_primer": values["include_primer"],
            "coverage": coverage,
            "coverage_source": coverage_source,
            "productivity": values["productivity"],
            "region": pricing.region,
            "apply_markup": values["apply_markup"],
            "apply_tax": values["apply_tax"],
        }
        results = {
            "net_area": round_to(net_area, 1),
            "gallons": gallons,
            "primer_gallons": primer_gallons,
            "paint_unit_price": self.money(paint_price.value),
            "primer_unit_price": self.money(primer_price.value),
            "labor_rate": self.money(labor_price.value),
            "paint_cost": self.money(paint_cost),
            "primer_cost": self.money(primer_cost),
            "material_cost": self.money(material_cost),
            "labor_hours": round_to(labor_hours, 2),
            "labor_cost": self.money(labor_cost),
            "equipment_cost": 0.0,
            "subtotal": self.money(subtotal),
            "markup_rate": financials["markup_rate"],
            "markup": self.money(financials["markup"]),
            "tax_rate": financials["tax_rate"],
            "tax": self.money(financials["tax"]),
            "total": self.money(financials["total"]),
            "regional_multiplier": pricing.multiplier,
        }
        summary = "%s gallons | %s total" % (format_number(gallons, 1), format_currency(results["total"]))
        return self.make_computation(
            inputs, pricing, results, [paint_price, primer_price, labor_price], summary=summary)

    def explain(self, state: dict) -> str:
        inputs = state.get("inputs") or {}
        results = state.get("results") or {}
        if not inputs or not results:
            return ""
        sources = state.get("price_sources") or {}
        multiplier = results.get("regional_multiplier", 1)
        paint_key = QUALITY_PRICE_KEYS.get(inputs["quality"], "gallon_standard")
        n = format_number

        coverage_note = "entered" if inputs["coverage_source"] == "override" else "%s texture" % inputs["texture"]
        lines = [
            "**Inputs**",
            "- Paintable area: %s − %s openings = %s sq ft" % (
                n(inputs["wall_area"]), n(inputs["openings"]), n(results["net_area"], 1)),
            "- Coats: %s, quality: %s" % (n(inputs["coats"]), inputs["quality"]),
            "- Coverage: %s sq ft/gal (%s)" % (n(inputs["coverage"]), coverage_note),
            "- Primer required" if inputs["include_primer"] else "- Primer not required",
            "",
            "**Math**",
            "1. Gallons = ceil₀.₁(%s × %s ÷ %s) = %s gal" % (
                n(results["net_area"], 1), n(inputs["coats"]), n(inputs["coverage"]), n(results["gallons"], 1)),
            "2. Primer = ceil₀.₁(%s ÷ %d) = %s gal" % (
                n(results["net_area"], 1), PRIMER_COVERAGE, n(results["primer_gallons"], 1)),
            "3. Labor hours = %s ÷ %s sq ft/hr = %s hr" % (
                n(results["net_area"], 1), n(inputs["productivity"]), n(results["labor_hours"])),
            "",
            "**Costs**",
            "- Paint = %s gal × %s %s = %s" % (
                n(results["gallons"], 1), format_currency(results["paint_unit_price"]),
                self.price_note(sources, paint_key, multiplier), format_currency(results["paint_cost"])),
            "- Primer = %s gal × %s %s = %s" % (
                n(results["primer_gallons"], 1), format_currency(results["primer_unit_price"]),
                self.price_note(sources, "primer_gallon", multiplier), format_currency(results["primer_cost"])),
            "- Labor = %s hr × %s %s = %s" % (
                n(results["labor_hours"]), format_currency(results["labor_rate"]),
                self.price_note(sources, "labor_hr", multiplier), format_currency(results["labor_cost"])),
            "",
        ]
        lines += self.financial_lines(results)
        return "\n".join(lines)
