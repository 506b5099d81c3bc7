from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

FIELD_TYPE_TEXT = "Text"
FIELD_TYPE_NUMBER = "Number"
FIELD_TYPE_DROPDOWN = "Dropdown"
FIELD_TYPES = (FIELD_TYPE_TEXT, FIELD_TYPE_NUMBER, FIELD_TYPE_DROPDOWN)

PRICING_BASE = "Base"
PRICING_PER_UNIT = "PerUnit"
PRICING_PER_CHAR = "PerChar"

PRICING_MODELS_BY_TYPE: dict[str, tuple[str, ...]] = {
    FIELD_TYPE_TEXT: (PRICING_BASE, PRICING_PER_CHAR),
    FIELD_TYPE_NUMBER: (PRICING_BASE, PRICING_PER_UNIT),
    FIELD_TYPE_DROPDOWN: (),
}

SCOPE_PRODUCT = "product"
SCOPE_FIELD = "field"
SCOPE_OPTION = "option"

MESSAGES = {
    "name_required": "Product name is required",
    "base_price_required": "Base price must be a number",
    "label_required": "Label required",
    "label_unique": "Label must be unique within product",
    "options_min_count": "Dropdown requires minimum 2 options",
    "option_name_required": "Option name required",
    "option_name_unique": "Option names must be unique in same field",
    "option_price_required": "Option price required",
    "price_required": "Price required",
}

MIN_DROPDOWN_OPTIONS = 2

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ValidationIssue:
    scope: str
    id: str | None
    rule: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"scope": self.scope, "id": self.id, "rule": self.rule, "message": self.message}


@dataclass(slots=True)
class ValidationResult:
    valid: bool
    issues: list[ValidationIssue]

    def for_scope(self, scope: str, target_id: str | None = None) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.scope == scope and issue.id == target_id]

    def rules(self) -> set[str]:
        return {issue.rule for issue in self.issues}

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "issues": [issue.to_dict() for issue in self.issues]}


@dataclass(slots=True, frozen=True)
class PriceLine:
    field_id: str
    label: str
    amount: float


@dataclass(slots=True)
class PriceBreakdown:
    base_price: float
    lines: list[PriceLine]
    total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_price": self.base_price,
            "lines": [
                {"field_id": line.field_id, "label": line.label, "amount": line.amount, "formatted": format_price(line.amount)}
                for line in self.lines
            ],
            "total": self.total,
            "formatted_total": format_price(self.total),
        }


def coerce_number(value: Any) -> float:
    """Permissive numeric coercion used for every price computation.

    Anything that does not parse as a finite float counts as 0, so customer
    input can never make pricing fail.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def is_finite_number(value: Any) -> bool:
    """True when an admin-entered value resolves to a finite number."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(float(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return False
        try:
            return math.isfinite(float(text))
        except ValueError:
            return False
    return False


def format_price(amount: float) -> str:
    return f"{amount:.2f}"


def allowed_pricing_models(field_type: str) -> list[str]:
    return list(PRICING_MODELS_BY_TYPE.get(field_type, ()))


def _trimmed(value: Any) -> str:
    return str(value or "").strip()


def _duplicates(values: Iterable[str]) -> set[str]:
    seen: set[str] = set()
    repeated: set[str] = set()
    for value in values:
        if value in seen:
            repeated.add(value)
        seen.add(value)
    return repeated


def validate_admin(product: Any, fields: Iterable[Any]) -> ValidationResult:
    """Check a product and its fields for internal consistency.

    Every rule is evaluated for every field and option; issues are collected
    rather than raised. A field carries at most one label issue and an option
    at most one name issue, with the uniqueness issue taking precedence.
    """
    fields = list(fields)
    issues: list[ValidationIssue] = []

    if not _trimmed(product.name):
        issues.append(_issue(SCOPE_PRODUCT, None, "name_required"))
    if not is_finite_number(product.base_price):
        issues.append(_issue(SCOPE_PRODUCT, None, "base_price_required"))

    duplicate_labels = _duplicates(_trimmed(field.label) for field in fields)
    for field in fields:
        label = _trimmed(field.label)
        if label in duplicate_labels:
            issues.append(_issue(SCOPE_FIELD, field.id, "label_unique"))
        elif not label:
            issues.append(_issue(SCOPE_FIELD, field.id, "label_required"))

        if field.type == FIELD_TYPE_DROPDOWN:
            options = list(field.options or ())
            if len(options) < MIN_DROPDOWN_OPTIONS:
                issues.append(_issue(SCOPE_FIELD, field.id, "options_min_count"))
            duplicate_names = _duplicates(_trimmed(option.name) for option in options)
            for option in options:
                name = _trimmed(option.name)
                if name in duplicate_names:
                    issues.append(_issue(SCOPE_OPTION, option.id, "option_name_unique"))
                elif not name:
                    issues.append(_issue(SCOPE_OPTION, option.id, "option_name_required"))
                if not is_finite_number(option.price):
                    issues.append(_issue(SCOPE_OPTION, option.id, "option_price_required"))

        if field.type in (FIELD_TYPE_TEXT, FIELD_TYPE_NUMBER) and not is_finite_number(field.price):
            issues.append(_issue(SCOPE_FIELD, field.id, "price_required"))

    result = ValidationResult(valid=(len(issues) == 0), issues=issues)
    if not result.valid:
        logger.info(
            "validation_failed",
            extra={"issue_count": len(issues), "rules": sorted(result.rules())},
        )
    return result


def _issue(scope: str, target_id: str | None, rule: str) -> ValidationIssue:
    return ValidationIssue(scope=scope, id=target_id, rule=rule, message=MESSAGES[rule])


def _as_text(value: Any) -> str:
    # integral floats print without a fraction: 1.0 -> "1"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def calc_field_price(field: Any, value: Any) -> float:
    if field is None:
        return 0.0

    if field.type == FIELD_TYPE_DROPDOWN:
        selected = _as_text(value)
        option = next((item for item in field.options or () if str(item.id) == selected), None)
        if option is None:
            return 0.0
        return coerce_number(option.price)

    price = coerce_number(field.price)
    if field.type == FIELD_TYPE_NUMBER:
        quantity = coerce_number(value)
        if field.pricing_model == PRICING_BASE:
            return price
        if field.pricing_model == PRICING_PER_UNIT:
            return price * quantity
        return 0.0

    if field.type == FIELD_TYPE_TEXT:
        text = _as_text(value if value is not None else "")
        if field.pricing_model == PRICING_BASE:
            return price
        if field.pricing_model == PRICING_PER_CHAR:
            return price * len(text)
        return 0.0

    return 0.0


def price_breakdown(product: Any, fields: Iterable[Any], customer_inputs: Mapping[str, Any]) -> PriceBreakdown:
    base_price = coerce_number(product.base_price)
    lines = [
        PriceLine(
            field_id=field.id,
            label=field.label,
            amount=calc_field_price(field, customer_inputs.get(field.id)),
        )
        for field in fields
    ]
    total = base_price
    for line in lines:
        total += line.amount
    logger.debug(
        "price_calculated",
        extra={"base_price": base_price, "field_count": len(lines), "total": total},
    )
    return PriceBreakdown(base_price=base_price, lines=lines, total=total)


def calc_total_price(product: Any, fields: Iterable[Any], customer_inputs: Mapping[str, Any]) -> float:
    return price_breakdown(product, fields, customer_inputs).total
