"""
80G certificate formats.

Financial year, PAN / pincode / certificate-number predicates and the
Indian-numbering amount-in-words used on the printed certificate.
"""
from __future__ import annotations

import re
from datetime import date

CERTIFICATE_PREFIX = "KMWF-80G"

PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
PINCODE_RE = re.compile(r"^\d{6}$")


def _certificate_re(prefix: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(prefix)}-(\d{{4}}-\d{{2}})-(\d{{6}})$")


def get_financial_year(when: date) -> str:
    """Indian financial year (April to March) containing ``when``.

    >>> get_financial_year(date(2024, 4, 1))
    '2024-25'
    >>> get_financial_year(date(2024, 3, 31))
    '2023-24'
    """
    year = when.year
    if when.month >= 4:
        return f"{year}-{str(year + 1)[2:]}"
    return f"{year - 1}-{str(year)[2:]}"


def is_valid_pan(pan: str | None) -> bool:
    return bool(pan) and PAN_RE.match(pan) is not None


def is_valid_pincode(pincode: str | None) -> bool:
    return bool(pincode) and PINCODE_RE.match(pincode) is not None


def format_certificate_number(
    financial_year: str, sequence: int, prefix: str = CERTIFICATE_PREFIX
) -> str:
    return f"{prefix}-{financial_year}-{sequence:06d}"


def is_valid_certificate_number(value: str | None, prefix: str = CERTIFICATE_PREFIX) -> bool:
    return bool(value) and _certificate_re(prefix).match(value) is not None


def extract_financial_year_from_certificate(
    value: str, prefix: str = CERTIFICATE_PREFIX
) -> str | None:
    m = _certificate_re(prefix).match(value or "")
    return m.group(1) if m else None


def extract_sequence_from_certificate(
    value: str, prefix: str = CERTIFICATE_PREFIX
) -> int | None:
    m = _certificate_re(prefix).match(value or "")
    return int(m.group(2)) if m else None


# ---------------------------------------------------------------------------
# Amount in words (Indian numbering)
# ---------------------------------------------------------------------------

_UNITS = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine"]
_TEENS = [
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen",
    "Fifteen", "Sixteen", "Seventeen", "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]

# (divisor, label), largest first
_SCALES = [(10_000_000, "Crore"), (100_000, "Lakh"), (1_000, "Thousand")]


def _below_thousand(num: int) -> list[str]:
    words: list[str] = []
    if num >= 100:
        words += [_UNITS[num // 100], "Hundred"]
        num %= 100
    if num >= 20:
        words.append(_TENS[num // 10])
        num %= 10
    elif num >= 10:
        words.append(_TEENS[num - 10])
        return words
    if num > 0:
        words.append(_UNITS[num])
    return words


def group_indian(amount: float) -> str:
    """Indian digit grouping: ``1234567.5 -> '12,34,567.50'``."""
    negative = amount < 0
    whole, _, paise = f"{abs(amount):.2f}".partition(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    text = whole if paise == "00" else f"{whole}.{paise}"
    return f"-{text}" if negative else text


def number_to_words(amount: float) -> str:
    """Whole rupees in words, e.g. ``125000 -> 'One Lakh Twenty Five Thousand'``."""
    remaining = int(amount)
    if remaining == 0:
        return "Zero"

    words: list[str] = []
    for divisor, label in _SCALES:
        count, remaining = divmod(remaining, divisor)
        if count:
            words += _below_thousand(count) + [label]
    words += _below_thousand(remaining)
    return " ".join(words)
