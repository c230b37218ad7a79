"""
Roofing calculator.

Roof area = footprint × pitch multiplier, converted to squares (100 sq ft) and
scaled by a complexity factor for hips, valleys and penetrations. Material,
underlayment and flashing are priced per square; install labor per square by
material; optional tear-off. Permit and dumpster are flat fees (heavy dumpster
for tile and slate).
"""

from ..pricing import PricingSnapshot
from ..validation import FieldRule
from .base import BaseCalculator
from .units import SQFT_PER_ROOFING_SQUARE, format_currency, format_number, round_to, square_feet

# Slope factor: rafter length ÷ run
PITCH_MULTIPLIERS = {
    "3/12": 1.031,
    "4/12": 1.054,
    "5/12": 1.083,
    "6/12": 1.118,
    "7/12": 1.158,
    "8/12": 1.202,
    "9/12": 1.250,
    "10/12": 1.302,
    "12/12": 1.414,
}

COMPLEXITY_FACTORS = {
    "simple": 1.0,
    "moderate": 1.15,
    "complex": 1.35,
}

MATERIALS = [
    "asphalt_shingles",
    "architectural_shingles",
    "metal_panels",
    "metal_shingles",
    "tile_clay",
    "tile_concrete",
    "slate",
    "wood_shingles",
]
HEAVY_MATERIALS = {"tile_clay", "tile_concrete", "slate"}

UNDERLAYMENTS = ["felt", "synthetic", "ice_shield"]


class RoofingCalculator(BaseCalculator):

    key = "roofing"
    title = "Roofing"

    SCHEMA = {
        "length": FieldRule(type="number", min=5, max=500, required=True, label="Footprint length"),
        "width": FieldRule(type="number", min=5, max=500, required=True, label="Footprint width"),
        "pitch": FieldRule(type="enum", options=list(PITCH_MULTIPLIERS), label="Roof pitch"),
        "complexity": FieldRule(type="enum", options=list(COMPLEXITY_FACTORS), label="Complexity"),
        "material": FieldRule(type="enum", options=MATERIALS, label="Roofing material"),
        "underlayment": FieldRule(type="enum", options=UNDERLAYMENTS, label="Underlayment"),
        "tear_off": FieldRule(type="boolean", label="Tear off existing roof"),
        "include_permit": FieldRule(type="boolean", label="Include permit"),
        "material_price": FieldRule(type="number", min=0, label="Material price per square"),
        "labor_rate": FieldRule(type="number", min=0, label="Install labor per square"),
        "apply_markup": FieldRule(type="boolean", label="Apply markup"),
        "apply_tax": FieldRule(type="boolean", label="Apply tax"),
    }

    DEFAULTS = {
        "pitch": "6/12",
        "complexity": "simple",
        "material": "asphalt_shingles",
        "underlayment": "synthetic",
        "tear_off": False,
        "include_permit": True,
        "apply_markup": False,
        "apply_tax": False,
    }

    CONSUMED_FIELDS = tuple(SCHEMA)

    def calculate(self, values: dict, pricing: PricingSnapshot) -> dict:
        material = values["material"]
        footprint = square_feet(values["length"], values["width"])
        pitch_factor = PITCH_MULTIPLIERS.get(values["pitch"], 1.118)
        complexity_factor = COMPLEXITY_FACTORS.get(values["complexity"], 1.0)

        roof_area = footprint * pitch_factor
        squares = roof_area / SQFT_PER_ROOFING_SQUARE
        adjusted_squares = squares * complexity_factor

        material_price = self.price(pricing, f"{material}_sq", values.get("material_price"))
        underlayment_price = self.price(pricing, f"underlayment_{values['underlayment']}_sq")
        flashing_price = self.price(pricing, "flashing_sq")
        install_price = self.price(pricing, f"install_{material}_sq", values.get("labor_rate"))
        price_fields = [material_price, underlayment_price, flashing_price, install_price]

        shingle_cost = adjusted_squares * material_price.value
        underlayment_cost = adjusted_squares * underlayment_price.value
        flashing_cost = adjusted_squares * flashing_price.value
        material_cost = shingle_cost + underlayment_cost + flashing_cost

        install_cost = adjusted_squares * install_price.value
        tear_off_cost = 0.0
        if values["tear_off"]:
            tear_off_price = self.price(pricing, "tear_off_sq")
            price_fields.append(tear_off_price)
            tear_off_cost = adjusted_squares * tear_off_price.value
        labor_cost = install_cost + tear_off_cost

        permit_cost = 0.0
        if values["include_permit"]:
            permit_price = self.price(pricing, "permit_flat")
            price_fields.append(permit_price)
            permit_cost = permit_price.value
        dumpster_key = "dumpster_heavy" if material in HEAVY_MATERIALS else "dumpster_standard"
        dumpster_price = self.price(pricing, dumpster_key)
        price_fields.append(dumpster_price)
        equipment_cost = permit_cost + dumpster_price.value

        subtotal = material_cost + labor_cost + equipment_cost
        financials = self.apply_financials(
            subtotal, pricing, values["apply_markup"], values["apply_tax"])

        inputs = {
            "length_ft": values["length"],
            "width_ft": values["width"],
            "pitch": values["pitch"],
            "pitch_factor": pitch_factor,
            "complexity": values["complexity"],
            "complexity_factor": complexity_factor,
            "material": material,
            "underlayment": values["underlayment"],
            "tear_off": values["tear_off"],
            "include_permit": values["include_permit"],
            "dumpster": dumpster_key,
            "region": pricing.region,
            "apply_markup": values["apply_markup"],
            "apply_tax": values["apply_tax"],
        }
        results = {
            "footprint_sqft": round_to(footprint, 1),
            "roof_area_sqft": round_to(roof_area, 1),
            "squares": round_to(squares, 2),
            "adjusted_squares": round_to(adjusted_squares, 2),
            "material_unit_price": self.money(material_price.value),
            "underlayment_unit_price": self.money(underlayment_price.value),
            "flashing_unit_price": self.money(flashing_price.value),
            "install_rate": self.money(install_price.value),
            "shingle_cost": self.money(shingle_cost),
            "underlayment_cost": self.money(underlayment_cost),
            "flashing_cost": self.money(flashing_cost),
            "material_cost": self.money(material_cost),
            "install_cost": self.money(install_cost),
            "tear_off_cost": self.money(tear_off_cost),
            "labor_cost": self.money(labor_cost),
            "permit_cost": self.money(permit_cost),
            "dumpster_cost": self.money(dumpster_price.value),
            "equipment_cost": self.money(equipment_cost),
            "subtotal": self.money(subtotal),
            "markup_rate": financials["markup_rate"],
            "markup": self.money(financials["markup"]),
            "tax_rate": financials["tax_rate"],
            "tax": self.money(financials["tax"]),
            "total": self.money(financials["total"]),
            "regional_multiplier": pricing.multiplier,
        }
        summary = "%s squares | %s total" % (
            format_number(results["adjusted_squares"]), format_currency(results["total"]))
        return self.make_computation(inputs, pricing, results, price_fields, summary=summary)

    def explain(self, state: dict) -> str:
        inputs = state.get("inputs") or {}
        results = state.get("results") or {}
        if not inputs or not results:
            return ""
        sources = state.get("price_sources") or {}
        multiplier = results.get("regional_multiplier", 1)
        material = inputs["material"]
        n = format_number

        lines = [
            "**Area**",
            "- Footprint = %s × %s = %s sq ft" % (
                n(inputs["length_ft"]), n(inputs["width_ft"]), n(results["footprint_sqft"], 1)),
            "- Roof area = footprint × %s (%s pitch) = %s sq ft" % (
                n(inputs["pitch_factor"], 3), inputs["pitch"], n(results["roof_area_sqft"], 1)),
            "- Squares = %s ÷ 100 = %s" % (n(results["roof_area_sqft"], 1), n(results["squares"])),
            "- Adjusted = %s × %s (%s) = %s squares" % (
                n(results["squares"]), n(inputs["complexity_factor"]), inputs["complexity"],
                n(results["adjusted_squares"])),
            "",
            "**Materials**",
            "- %s = %s sq × %s %s = %s" % (
                material.replace("_", " ").title(), n(results["adjusted_squares"]),
                format_currency(results["material_unit_price"]),
                self.price_note(sources, f"{material}_sq", multiplier),
                format_currency(results["shingle_cost"])),
            "- Underlayment (%s) = %s sq × %s %s = %s" % (
                inputs["underlayment"], n(results["adjusted_squares"]),
                format_currency(results["underlayment_unit_price"]),
                self.price_note(sources, "underlayment_%s_sq" % inputs["underlayment"], multiplier),
                format_currency(results["underlayment_cost"])),
            "- Flashing = %s sq × %s %s = %s" % (
                n(results["adjusted_squares"]), format_currency(results["flashing_unit_price"]),
                self.price_note(sources, "flashing_sq", multiplier), format_currency(results["flashing_cost"])),
            "",
            "**Labor**",
            "- Install = %s sq × %s %s = %s" % (
                n(results["adjusted_squares"]), format_currency(results["install_rate"]),
                self.price_note(sources, f"install_{material}_sq", multiplier),
                format_currency(results["install_cost"])),
        ]
        if inputs["tear_off"]:
            lines.append("- Tear-off %s = %s" % (
                self.price_note(sources, "tear_off_sq", multiplier), format_currency(results["tear_off_cost"])))
        lines += ["", "**Equipment & Fees**"]
        if inputs["include_permit"]:
            lines.append("- Permit %s = %s" % (
                self.price_note(sources, "permit_flat", multiplier), format_currency(results["permit_cost"])))
        lines += [
            "- Dumpster (%s) %s = %s" % (
                inputs["dumpster"].replace("dumpster_", ""),
                self.price_note(sources, inputs["dumpster"], multiplier),
                format_currency(results["dumpster_cost"])),
            "",
        ]
        lines += self.financial_lines(results)
        return "\n".join(lines)
