"""
Wall framing takeoff.

Studs = ceil(wall length in inches ÷ spacing) + 1. Plates = 3 × wall length
(double top + bottom). Sheathing carries a 7% cut allowance.
"""

import math

from ..pricing import PricingSnapshot
from ..validation import FieldRule
from .base import BaseCalculator
from .units import format_currency, format_number, round_to, square_feet

STUD_SPACING_IN = {"12": 12, "16": 16, "24": 24}

# Stud stock length (ft) by lumber size
STUD_LENGTH_FT = {"2x4": 8, "2x6": 10}

PLATES_PER_WALL = 3
SHEATHING_WASTE_PCT = 7.0


class FramingCalculator(BaseCalculator):

    key = "framing"
    title = "Framing Takeoff"

    SCHEMA = {
        "wall_length": FieldRule(type="number", min=1, required=True, label="Wall length",
                                 message="Wall length must be at least 1 ft"),
        "wall_height": FieldRule(type="number", min=7, max=20, required=True, label="Wall height",
                                 message="Wall height must be between 7 and 20 ft"),
        "spacing": FieldRule(type="enum", options=list(STUD_SPACING_IN), label="Stud spacing"),
        "lumber_size": FieldRule(type="enum", options=list(STUD_LENGTH_FT), label="Lumber size"),
        "include_sheathing": FieldRule(type="boolean", label="Include sheathing"),
        "labor_rate": FieldRule(type="number", min=0, label="Labor rate per sq ft"),
        "apply_markup": FieldRule(type="boolean", label="Apply markup"),
        "apply_tax": FieldRule(type="boolean", label="Apply tax"),
    }

    DEFAULTS = {
        "spacing": "16",
        "lumber_size": "2x4",
        "include_sheathing": True,
        "apply_markup": False,
        "apply_tax": False,
    }

    CONSUMED_FIELDS = tuple(SCHEMA)

    def calculate(self, values: dict, pricing: PricingSnapshot) -> dict:
        length_ft = values["wall_length"]
        height_ft = values["wall_height"]
        spacing_in = STUD_SPACING_IN.get(values["spacing"], 16)
        stud_length = STUD_LENGTH_FT.get(values["lumber_size"], 8)

        stud_count = math.ceil((length_ft * 12) / spacing_in) + 1
        plates_lf = length_ft * PLATES_PER_WALL
        area_sqft = square_feet(length_ft, height_ft)
        sheathing_sqft = area_sqft * (1 + SHEATHING_WASTE_PCT / 100) if values["include_sheathing"] else 0.0

        stud_price = self.price(pricing, "stud_10ft" if stud_length > 8 else "stud_8ft")
        plate_price = self.price(pricing, "plate_lf")
        sheathing_price = self.price(pricing, "sheathing_sqft")
        hardware_price = self.price(pricing, "hardware_sqft")
        labor_price = self.price(pricing, "labor_sqft", values.get("labor_rate"))

        stud_cost = stud_count * stud_price.value
        plate_cost = plates_lf * plate_price.value
        sheathing_cost = sheathing_sqft * sheathing_price.value
        hardware_cost = area_sqft * hardware_price.value
        material_cost = stud_cost + plate_cost + sheathing_cost + hardware_cost
        labor_cost = area_sqft * labor_price.value
        subtotal = material_cost + labor_cost
        financials = self.apply_financials(
            subtotal, pricing, values["apply_markup"], values["apply_tax"])

        inputs = {
            "wall_length_ft": length_ft,
            "wall_height_ft": height_ft,
            "spacing": values["spacing"],
            "lumber_size": values["lumber_size"],
            "stud_length_ft": stud_length,
            "include_sheathing": values["include_sheathing"],
            "region": pricing.region,
            "apply_markup": values["apply_markup"],
            "apply_tax": values["apply_tax"],
        }
        results = {
            "stud_count": stud_count,
            "plates_lf": round_to(plates_lf, 1),
            "area_sqft": round_to(area_sqft, 1),
            "sheathing_sqft": round_to(sheathing_sqft, 1),
            "stud_unit_price": self.money(stud_price.value),
            "plate_unit_price": self.money(plate_price.value),
            "sheathing_unit_price": self.money(sheathing_price.value),
            "hardware_unit_price": self.money(hardware_price.value),
            "labor_rate": self.money(labor_price.value),
            "stud_cost": self.money(stud_cost),
            "plate_cost": self.money(plate_cost),
            "sheathing_cost": self.money(sheathing_cost),
            "hardware_cost": self.money(hardware_cost),
            "material_cost": self.money(material_cost),
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
        summary = "%d studs | %s total" % (stud_count, format_currency(results["total"]))
        return self.make_computation(
            inputs, pricing, results,
            [stud_price, plate_price, sheathing_price, hardware_price, labor_price],
            summary=summary,
        )

    def explain(self, state: dict) -> str:
        inputs = state.get("inputs") or {}
        results = state.get("results") or {}
        if not inputs or not results:
            return ""
        sources = state.get("price_sources") or {}
        multiplier = results.get("regional_multiplier", 1)
        stud_key = "stud_10ft" if inputs["stud_length_ft"] > 8 else "stud_8ft"
        n = format_number

        lines = [
            "**Inputs**",
            "- Wall: %s ft long × %s ft high" % (n(inputs["wall_length_ft"]), n(inputs["wall_height_ft"])),
            '- Stud spacing: %s" on center, %s lumber (%d ft studs)' % (
                inputs["spacing"], inputs["lumber_size"], inputs["stud_length_ft"]),
            "",
            "**Math**",
            "1. Stud count = (%s ft × 12) ÷ %s + 1 = %d" % (
                n(inputs["wall_length_ft"]), inputs["spacing"], results["stud_count"]),
            "2. Plates = wall length × 3 = %s linear ft" % n(results["plates_lf"], 1),
            "3. Area = %s × %s = %s sq ft" % (
                n(inputs["wall_length_ft"]), n(inputs["wall_height_ft"]), n(results["area_sqft"], 1)),
        ]
        if inputs["include_sheathing"]:
            lines.append("4. Sheathing = area × 1.07 = %s sq ft" % n(results["sheathing_sqft"], 1))
        else:
            lines.append("4. Sheathing excluded")
        lines += [
            "",
            "**Costs**",
            "- Studs = %d × %s %s = %s" % (
                results["stud_count"], format_currency(results["stud_unit_price"]),
                self.price_note(sources, stud_key, multiplier), format_currency(results["stud_cost"])),
            "- Plates = %s lf × %s %s = %s" % (
                n(results["plates_lf"], 1), format_currency(results["plate_unit_price"]),
                self.price_note(sources, "plate_lf", multiplier), format_currency(results["plate_cost"])),
            "- Sheathing = %s sq ft × %s %s = %s" % (
                n(results["sheathing_sqft"], 1), format_currency(results["sheathing_unit_price"]),
                self.price_note(sources, "sheathing_sqft", multiplier),
                format_currency(results["sheathing_cost"])),
            "- Hardware = %s sq ft × %s %s = %s" % (
                n(results["area_sqft"], 1), format_currency(results["hardware_unit_price"]),
                self.price_note(sources, "hardware_sqft", multiplier),
                format_currency(results["hardware_cost"])),
            "- Labor = %s sq ft × %s %s = %s" % (
                n(results["area_sqft"], 1), format_currency(results["labor_rate"]),
                self.price_note(sources, "labor_sqft", multiplier), format_currency(results["labor_cost"])),
            "",
        ]
        lines += self.financial_lines(results)
        return "\n".join(lines)
