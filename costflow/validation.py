"""
Declarative input validation for calculator panels.

A schema is an ordered mapping of field name -> FieldRule. validate() walks the
schema in declaration order and reports at most one message per field. Values
for fields the schema does not declare are ignored, so every field a calculator
consumes must be declared (see find_unvalidated_fields).

Nothing here raises; callers always get a ValidationResult back.
"""

from typing import Literal, Optional

from pydantic import BaseModel, computed_field

from .calculators.units import format_number, parse_number

BOOLEAN_LITERALS = {"true": True, "false": False}


class FieldRule(BaseModel):
    type: Literal["number", "enum", "boolean"]
    min: Optional[float] = None
    max: Optional[float] = None
    options: Optional[list[str]] = None
    required: bool = False
    label: Optional[str] = None
    message: Optional[str] = None  # replaces the generated text for type/range failures


class ValidationResult(BaseModel):
    errors: dict[str, str] = {}

    @computed_field
    @property
    def valid(self) -> bool:
        return not self.errors


def is_blank(value) -> bool:
    """None, empty string or whitespace counts as 'not present'."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def parse_boolean(value) -> Optional[bool]:
    """Accept real booleans and the literals 'true' / 'false'."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return BOOLEAN_LITERALS.get(value.strip().lower())
    return None


def _label(name: str, rule: FieldRule) -> str:
    return rule.label or name.replace("_", " ").capitalize()


def validate_field(name: str, value, rule: FieldRule) -> Optional[str]:
    """Return the first failing message for one field, or None if it passes."""
    label = _label(name, rule)

    if is_blank(value):
        return f"{label} is required" if rule.required else None

    if rule.type == "number":
        number = parse_number(value)
        if number is None:
            return rule.message or f"{label} must be a number"
        if rule.min is not None and number < rule.min:
            if rule.message:
                return rule.message
            if rule.max is not None:
                return f"{label} must be between {format_number(rule.min)} and {format_number(rule.max)}"
            return f"{label} must be at least {format_number(rule.min)}"
        if rule.max is not None and number > rule.max:
            if rule.message:
                return rule.message
            if rule.min is not None:
                return f"{label} must be between {format_number(rule.min)} and {format_number(rule.max)}"
            return f"{label} must be at most {format_number(rule.max)}"
        return None

    if rule.type == "enum":
        options = rule.options or []
        if str(value).strip() not in options:
            return rule.message or f"{label} must be one of: {', '.join(options)}"
        return None

    if rule.type == "boolean":
        if parse_boolean(value) is None:
            return rule.message or f"{label} must be true or false"
        return None

    return None


def validate(values: dict, schema: dict[str, FieldRule]) -> ValidationResult:
    """Validate raw values against a schema. Synchronous, no side effects."""
    errors = {}
    for name, rule in schema.items():
        message = validate_field(name, values.get(name), rule)
        if message:
            errors[name] = message
    return ValidationResult(errors=errors)


def required_fields(schema: dict[str, FieldRule]) -> list[str]:
    return [name for name, rule in schema.items() if rule.required]


def find_unvalidated_fields(calculator) -> list[str]:
    """
    Fields a calculator consumes but never declares in its schema.
    Those would reach the formula unchecked, so registration warns about them.
    """
    schema = getattr(calculator, "SCHEMA", None) or {}
    consumed = getattr(calculator, "CONSUMED_FIELDS", None) or ()
    return [name for name in consumed if name not in schema]
