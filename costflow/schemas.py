from typing import Any, Optional

from pydantic import BaseModel

from .validation import FieldRule


class CalculatorSummary(BaseModel):
    key: str
    title: str


class CalculatorSchema(CalculatorSummary):
    fields: dict[str, FieldRule] = {}
    defaults: dict[str, Any] = {}
    required: list[str] = []


class FieldUpdate(BaseModel):
    values: dict[str, Any]


class RegionUpdate(BaseModel):
    region: Optional[str] = None


class PreferencesUpdate(BaseModel):
    units: Optional[str] = None
    region: Optional[str] = None


class Region(BaseModel):
    code: str
    label: str
    multiplier: float
