"""
Marketplace item validation.

A single rule table keyed by item condition drives every check. Hard
errors block listing; warnings are advisory.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable

from kmwf.schemas import ConditionValidation, FieldValidation, ScrapItem, ValidationStatus


@dataclass(frozen=True)
class ConditionRule:
    label: str
    listable: bool
    required_fields: tuple[str, ...] = field(default_factory=tuple)
    recommended_fields: tuple[str, ...] = field(default_factory=tuple)


CONDITION_RULES: dict[str, ConditionRule] = {
    "new": ConditionRule(
        label="New",
        listable=True,
        required_fields=("name", "demanded_price"),
        recommended_fields=("description", "before_photos"),
    ),
    "good": ConditionRule(
        label="Good",
        listable=True,
        required_fields=("name", "demanded_price"),
        recommended_fields=("description", "before_photos", "after_photos"),
    ),
    "repairable": ConditionRule(
        label="Repairable",
        listable=True,
        required_fields=("name", "demanded_price"),
        recommended_fields=("repairing_cost", "description", "before_photos", "after_photos"),
    ),
    "scrap": ConditionRule(label="Scrap", listable=False),
    "not applicable": ConditionRule(label="Not applicable", listable=False),
}

MIN_NAME_LENGTH = 3

PRICE_ERROR = "Item must have a valid price to be listed"
NAME_ERROR = f"Item name must be at least {MIN_NAME_LENGTH} characters long"
SALE_PRICE_ERROR = "Sold items must have a sale price"

# message used when a recommended field is missing
MISSING_FIELD_WARNINGS = {
    "description": "Marketplace description is missing",
    "before_photos": "No before photos uploaded",
    "after_photos": "No after photos uploaded",
    "repairing_cost": "Repairing cost has not been recorded",
}

SOLD_NOT_LISTED_WARNING = "Item is marked as sold but was never listed"


def _has_field(item: ScrapItem, name: str) -> bool:
    listing = item.marketplace_listing
    if name == "name":
        return len(item.name.strip()) >= MIN_NAME_LENGTH
    if name == "demanded_price":
        return listing.demanded_price is not None and listing.demanded_price > 0
    if name == "description":
        return bool((listing.description or "").strip() or (item.description or "").strip())
    if name == "before_photos":
        return bool(item.photos.before)
    if name == "after_photos":
        return bool(item.photos.after)
    if name == "repairing_cost":
        return item.repairing_cost is not None
    raise KeyError(name)


# ---------------------------------------------------------------------------
# Individual checks: each returns (errors, warnings)
# ---------------------------------------------------------------------------

Findings = tuple[list[str], list[str]]


def check_condition(item: ScrapItem, rule: ConditionRule | None) -> Findings:
    if rule is None:
        return [f"Unknown item condition: {item.condition}"], []
    if not rule.listable and item.marketplace_listing.listed:
        return [f"{rule.label} items cannot be listed on marketplace"], []
    return [], []


def check_price(item: ScrapItem, rule: ConditionRule | None) -> Findings:
    if not _has_field(item, "demanded_price"):
        return [PRICE_ERROR], []
    return [], []


def check_name(item: ScrapItem, rule: ConditionRule | None) -> Findings:
    if not _has_field(item, "name"):
        return [NAME_ERROR], []
    return [], []


def check_sale(item: ScrapItem, rule: ConditionRule | None) -> Findings:
    listing = item.marketplace_listing
    if not listing.sold:
        return [], []
    errors: list[str] = []
    warnings: list[str] = []
    if listing.sale_price is None or listing.sale_price <= 0:
        errors.append(SALE_PRICE_ERROR)
    if not listing.listed:
        warnings.append(SOLD_NOT_LISTED_WARNING)
    return errors, warnings


def check_photos_and_description(item: ScrapItem, rule: ConditionRule | None) -> Findings:
    warnings = [
        MISSING_FIELD_WARNINGS[name]
        for name in ("before_photos", "after_photos", "description")
        if not _has_field(item, name)
    ]
    return [], warnings


def check_recommended_fields(item: ScrapItem, rule: ConditionRule | None) -> Findings:
    if rule is None:
        return [], []
    return [], [
        MISSING_FIELD_WARNINGS[name]
        for name in rule.recommended_fields
        if not _has_field(item, name)
    ]


ITEM_CHECKS: list[Callable[[ScrapItem, ConditionRule | None], Findings]] = [
    check_condition,
    check_price,
    check_name,
    check_sale,
    check_photos_and_description,
    check_recommended_fields,
]


def _evaluate(item: ScrapItem) -> tuple[ConditionRule | None, list[str], list[str]]:
    rule = CONDITION_RULES.get(item.condition)
    errors: list[str] = []
    warnings: list[str] = []
    for fn in ITEM_CHECKS:
        errs, warns = fn(item, rule)
        errors += [e for e in errs if e not in errors]
        warnings += [w for w in warns if w not in warnings]
    return rule, errors, warnings


def calculate_validation_status(item: ScrapItem) -> ValidationStatus:
    """Can this item go on the marketplace, and what is wrong with it."""
    rule, errors, warnings = _evaluate(item)
    can_list = not errors and rule is not None and rule.listable
    return ValidationStatus(can_list=can_list, errors=errors, warnings=warnings)


def validate_item_by_condition(item: ScrapItem) -> ConditionValidation:
    """Same evaluation as :func:`calculate_validation_status`, with the
    condition's rule metadata attached."""
    rule, errors, warnings = _evaluate(item)
    listable = rule is not None and rule.listable
    return ConditionValidation(
        condition=item.condition,
        listable=listable,
        is_valid=not errors,
        can_list=not errors and listable,
        errors=errors,
        warnings=warnings,
        required_fields=list(rule.required_fields) if rule else [],
        recommended_fields=list(rule.recommended_fields) if rule else [],
    )


def can_list_item(item: ScrapItem) -> bool:
    return calculate_validation_status(item).can_list


def format_validation_errors(status: ValidationStatus) -> str:
    if not status.errors:
        return ""
    if len(status.errors) == 1:
        return status.errors[0]
    return "; ".join(status.errors)


# ---------------------------------------------------------------------------
# Form fields (collection requests, gullak forms)
# ---------------------------------------------------------------------------

SUSPICIOUS_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
]


def _looks_malicious(text: str) -> bool:
    return any(p.search(text) for p in SUSPICIOUS_PATTERNS)


def validate_text_input(
    text: str | None, field_name: str, min_length: int = 0, max_length: int = 1000
) -> FieldValidation:
    if not text or not text.strip():
        if min_length > 0:
            return FieldValidation(is_valid=False, error=f"{field_name} is required")
        return FieldValidation(is_valid=True)

    value = text.strip()
    if len(value) < min_length:
        return FieldValidation(
            is_valid=False, error=f"{field_name} must be at least {min_length} characters"
        )
    if len(value) > max_length:
        return FieldValidation(
            is_valid=False, error=f"{field_name} must be less than {max_length} characters"
        )
    if _looks_malicious(value):
        return FieldValidation(is_valid=False, error=f"{field_name} contains invalid characters")
    return FieldValidation(is_valid=True)


def validate_address(address: str | None) -> FieldValidation:
    return validate_text_input(address, "Address", min_length=10, max_length=500)


def validate_phone(phone: str | None) -> FieldValidation:
    if not phone or not phone.strip():
        return FieldValidation(is_valid=False, error="Phone number is required")
    digits = re.sub(r"\D", "", phone)
    if len(digits) < 10:
        return FieldValidation(is_valid=False, error="Phone number must contain at least 10 digits")
    if len(digits) > 15:
        return FieldValidation(is_valid=False, error="Phone number must contain less than 15 digits")
    if digits.startswith("0"):
        return FieldValidation(is_valid=False, error="Invalid phone number format")
    return FieldValidation(is_valid=True)
