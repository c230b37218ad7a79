"""
Concrete slab calculator (flagship).

Volume = length × width × thickness, converted to cubic yards, plus a waste
allowance keyed by pour type (or an explicit waste %). Optional #4 rebar grid
with lap splices. Labor = adjusted yards ÷ crew productivity × hourly rate.
Equipment = placement flat fee (truck / pump / crane).
Markup and tax are individually toggleable; tax applies to subtotal + markup.
"""

import math

from ..pricing import PricingSnapshot
from ..validation import FieldRule
from .base import BaseCalculator
from .units import (
    apply_waste,
    convert_volume_for_display,
    cubic_feet_to_cubic_yards,
    format_currency,
    format_number,
    round_to,
    slab_volume_ft3,
    square_feet,
    to_feet,
    to_inches,
    UNIT_SYSTEMS,
)

# Waste allowance (%) by pour type
POUR_WASTE_PCT = {
    "slab": 5.0,
    "footing": 8.0,
    "wall": 10.0,
    "stairs": 15.0,
    "driveway": 7.0,
}
DEFAULT_WASTE_PCT = 8.0

REBAR_GRIDS = ["none", "12", "18", "24"]  # inches on center
DELIVERY_TYPES = ["truck", "pump", "crane"]


class ConcreteCalculator(BaseCalculator):

    key = "concrete"
    title = "Concrete Slab"

    SCHEMA = {
        "units": FieldRule(type="enum", options=list(UNIT_SYSTEMS), label="Units"),
        "length": FieldRule(type="number", min=1, max=1000, required=True, label="Length"),
        "width": FieldRule(type="number", min=1, max=1000, required=True, label="Width"),
        "thickness": FieldRule(type="number", min=2, max=48, required=True, label="Thickness"),
        "pour_type": FieldRule(type="enum", options=list(POUR_WASTE_PCT), label="Pour type"),
        "waste_pct": FieldRule(type="number", min=0, max=20, label="Waste"),
        "rebar_grid": FieldRule(type="enum", options=REBAR_GRIDS, label="Rebar grid"),
        "rebar_lap": FieldRule(type="number", min=12, max=48, label="Rebar lap"),
        "productivity": FieldRule(type="number", min=0.5, max=20, label="Crew productivity"),
        "delivery": FieldRule(type="enum", options=DELIVERY_TYPES, label="Placement"),
        "concrete_unit_price": FieldRule(type="number", min=0, label="Concrete unit price"),
        "labor_rate": FieldRule(type="number", min=0, label="Labor rate"),
        "equipment_flat": FieldRule(type="number", min=0, label="Equipment flat fee"),
        "apply_markup": FieldRule(type="boolean", label="Apply markup"),
        "apply_tax": FieldRule(type="boolean", label="Apply tax"),
    }

    DEFAULTS = {
        "units": "imperial",
        "pour_type": "slab",
        "rebar_grid": "none",
        "rebar_lap": 24.0,
        "productivity": 3.0,
        "delivery": "truck",
        "apply_markup": False,
        "apply_tax": False,
    }

    CONSUMED_FIELDS = tuple(SCHEMA)

    def calculate(self, values: dict, pricing: PricingSnapshot) -> dict:
        units = values["units"]
        metric = units == "metric"

        # 1. Geometry
        length_ft = to_feet(values["length"], "m" if metric else "ft")
        width_ft = to_feet(values["width"], "m" if metric else "ft")
        thickness_in = to_inches(values["thickness"], "cm" if metric else "in")
        area_sqft = square_feet(length_ft, width_ft)
        volume_ft3 = slab_volume_ft3(length_ft, width_ft, thickness_in)
        volume_yd3 = cubic_feet_to_cubic_yards(volume_ft3)

        # 2. Waste: explicit % wins over the pour-type table
        if values.get("waste_pct") is not None:
            waste_pct = values["waste_pct"]
        else:
            waste_pct = POUR_WASTE_PCT.get(values["pour_type"], DEFAULT_WASTE_PCT)
        adjusted_yd3 = apply_waste(volume_yd3, waste_pct)

        # 3. Reinforcement grid
        grid = values["rebar_grid"]
        lap_in = values["rebar_lap"]
        if grid == "none":
            bars_x = bars_y = 0
            lap_ft = 0.0
        else:
            spacing_in = float(grid)
            bars_x = math.ceil((width_ft * 12) / spacing_in) + 1
            bars_y = math.ceil((length_ft * 12) / spacing_in) + 1
            splice_count = max(bars_x - 1, 0) + max(bars_y - 1, 0)
            lap_ft = (lap_in / 12) * splice_count
        rebar_ft = bars_x * length_ft + bars_y * width_ft + lap_ft

        # 4. Prices
        concrete_price = self.price(pricing, "concrete_yd3", values.get("concrete_unit_price"))
        rebar_price = self.price(pricing, "rebar_ft")
        labor_price = self.price(pricing, "labor_hr", values.get("labor_rate"))
        equipment_price = self.price(pricing, f"{values['delivery']}_flat", values.get("equipment_flat"))

        # 5. Costs
        concrete_cost = adjusted_yd3 * concrete_price.value
        rebar_cost = rebar_ft * rebar_price.value
        material_cost = concrete_cost + rebar_cost
        labor_hours = adjusted_yd3 / values["productivity"]
        labor_cost = labor_hours * labor_price.value
        equipment_cost = equipment_price.value
        subtotal = material_cost + labor_cost + equipment_cost
        financials = self.apply_financials(
            subtotal, pricing, values["apply_markup"], values["apply_tax"])

        inputs = {
            "units": units,
            "length": values["length"],
            "width": values["width"],
            "thickness": values["thickness"],
            "length_ft": length_ft,
            "width_ft": width_ft,
            "thickness_in": thickness_in,
            "pour_type": values["pour_type"],
            "waste_pct": waste_pct,
            "rebar_grid": grid,
            "rebar_lap_in": lap_in,
            "productivity": values["productivity"],
            "delivery": values["delivery"],
            "region": pricing.region,
            "apply_markup": values["apply_markup"],
            "apply_tax": values["apply_tax"],
        }

        results = {
            "area_sqft": round_to(area_sqft, 2),
            "volume_ft3": round_to(volume_ft3, 2),
            "volume_yd3": round_to(volume_yd3, 3),
            "adjusted_yd3": round_to(adjusted_yd3, 3),
            "display_volume": round_to(convert_volume_for_display(adjusted_yd3, units), 3),
            "bars_x": bars_x,
            "bars_y": bars_y,
            "lap_ft": round_to(lap_ft, 2),
            "rebar_ft": round_to(rebar_ft, 0),
            "concrete_unit_price": self.money(concrete_price.value),
            "rebar_unit_price": self.money(rebar_price.value),
            "labor_rate": self.money(labor_price.value),
            "equipment_flat": self.money(equipment_price.value),
            "concrete_cost": self.money(concrete_cost),
            "rebar_cost": self.money(rebar_cost),
            "material_cost": self.money(material_cost),
            "labor_hours": round_to(labor_hours, 2),
            "labor_cost": self.money(labor_cost),
            "equipment_cost": self.money(equipment_cost),
            "subtotal": self.money(subtotal),
            "markup_rate": financials["markup_rate"],
            "markup": self.money(financials["markup"]),
            "tax_rate": financials["tax_rate"],
            "tax": self.money(financials["tax"]),
            "total": self.money(financials["total"]),
            "regional_multiplier": pricing.multiplier,
        }

        volume_unit = UNIT_SYSTEMS[units]["volume"]
        summary = "%s %s concrete | %s total" % (
            format_number(results["display_volume"], 2), volume_unit, format_currency(results["total"]))

        return self.make_computation(
            inputs, pricing, results,
            [concrete_price, rebar_price, labor_price, equipment_price],
            summary=summary,
        )

    def explain(self, state: dict) -> str:
        inputs = state.get("inputs") or {}
        results = state.get("results") or {}
        if not inputs or not results:
            return ""
        sources = state.get("price_sources") or {}
        multiplier = results.get("regional_multiplier", 1)
        n = format_number

        lines = [
            "### Volume",
            "Volume_ft³ = %s ft × %s ft × (%s in ÷ 12) = %s ft³" % (
                n(inputs["length_ft"]), n(inputs["width_ft"]), n(inputs["thickness_in"]),
                n(results["volume_ft3"])),
            "",
            "Volume_yd³ = %s ft³ ÷ 27 = %s yd³" % (n(results["volume_ft3"]), n(results["volume_yd3"], 3)),
            "",
            "Waste applied (%s%%, %s) => %s yd³" % (
                n(inputs["waste_pct"], 1), inputs["pour_type"], n(results["adjusted_yd3"], 3)),
            "",
            "### Reinforcement",
        ]
        if inputs["rebar_grid"] == "none":
            lines.append("No rebar grid selected.")
        else:
            lines += [
                "bars_X = ceil((width × 12) ÷ %s) + 1 = %d" % (inputs["rebar_grid"], results["bars_x"]),
                "",
                "bars_Y = ceil((length × 12) ÷ %s) + 1 = %d" % (inputs["rebar_grid"], results["bars_y"]),
                "",
                "Total ft = %d bars × %s ft + %d bars × %s ft + laps (%s ft) = %s ft" % (
                    results["bars_x"], n(inputs["length_ft"]), results["bars_y"], n(inputs["width_ft"]),
                    n(results["lap_ft"]), n(results["rebar_ft"], 0)),
            ]
        lines += [
            "",
            "### Costs",
            "Concrete = %s/yd³ %s × %s yd³ = %s" % (
                format_currency(results["concrete_unit_price"]),
                self.price_note(sources, "concrete_yd3", multiplier),
                n(results["adjusted_yd3"], 3), format_currency(results["concrete_cost"])),
            "",
            "Rebar = %s ft × %s/ft %s = %s" % (
                n(results["rebar_ft"], 0), format_currency(results["rebar_unit_price"]),
                self.price_note(sources, "rebar_ft", multiplier), format_currency(results["rebar_cost"])),
            "",
            "Material = concrete + rebar = %s" % format_currency(results["material_cost"]),
            "",
            "Labor = (%s yd³ ÷ %s yd³/hr) × %s/hr %s = %s" % (
                n(results["adjusted_yd3"], 3), n(inputs["productivity"]),
                format_currency(results["labor_rate"]),
                self.price_note(sources, "labor_hr", multiplier), format_currency(results["labor_cost"])),
            "",
            "Equipment (%s) = %s %s" % (
                inputs["delivery"], format_currency(results["equipment_cost"]),
                self.price_note(sources, "%s_flat" % inputs["delivery"], multiplier)),
            "",
        ]
        lines += self.financial_lines(results)
        return "\n".join(lines)
