"""Validates raw parsed JSON from the model into extraction models."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from renewal_worker.extraction.models import ExtractedPolicyRow, ReceiptExtraction
from renewal_worker.logging.logger import Log

_MODE_ALIASES = {
    "qly": "Qly",
    "quarterly": "Qly",
    "hly": "Hly",
    "half-yearly": "Hly",
    "half yearly": "Hly",
    "halfyearly": "Hly",
    "yly": "Yly",
    "yearly": "Yly",
    "annual": "Yly",
    "mly": "Mly",
    "monthly": "Mly",
}
_DEFAULT_CONFIDENCE = "medium"

# policies.amount and policies.commission are NUMERIC(14, 2).
_CENTS = Decimal("0.01")
_MAX_MONEY = Decimal("999999999999.99")


def filter_valid_rows(raw: list[Any]) -> list[ExtractedPolicyRow]:
    """Keep the rows that carry every required field and a positive amount.

    Rows missing ``policyNumber``, ``customerName``, ``mod`` or ``fup``, or
    whose ``amount`` is not greater than zero once rounded to cents or does
    not fit the money columns, are dropped. Partial success is expected: the
    surviving rows are returned in source order.
    """
    rows: list[ExtractedPolicyRow] = []
    for index, item in enumerate(raw):
        row = _build_row(item)
        if row is None:
            Log.debug(f"Dropping invalid extracted row at index {index}")
            continue
        rows.append(row)
    return rows


def build_receipt_extraction(raw: dict[str, Any]) -> ReceiptExtraction:
    """Build a ReceiptExtraction; unreadable or missing fields become None."""
    confidence = _text(raw.get("confidence"))
    return ReceiptExtraction(
        policy_number=_text(raw.get("policyNumber")),
        customer_name=_text(raw.get("customerName")),
        confidence=confidence.lower() if confidence else _DEFAULT_CONFIDENCE,
    )


def normalize_mode(mode: str) -> str:
    """Map long-form or oddly-cased payment modes to their abbreviation."""
    return _MODE_ALIASES.get(mode.strip().lower(), mode.strip())


def _build_row(item: Any) -> ExtractedPolicyRow | None:
    if not isinstance(item, dict):
        return None
    policy_number = _text(item.get("policyNumber"))
    customer_name = _text(item.get("customerName"))
    mode = _text(item.get("mod"))
    fup = _text(item.get("fup"))
    amount = _money(item.get("amount"))
    if not (policy_number and customer_name and mode and fup):
        return None
    if amount is None or amount <= 0 or amount > _MAX_MONEY:
        return None

    commission = _money(item.get("commission"))
    if commission is None or commission < 0:
        commission = Decimal("0.00")
    if commission > _MAX_MONEY:
        return None

    return ExtractedPolicyRow(
        policy_number=policy_number,
        customer_name=" ".join(customer_name.split()),
        mode=normalize_mode(mode),
        fup=fup,
        amount=amount,
        commission=commission,
        date_of_commencement=_text(item.get("dateOfCommencement")),
    )


def _text(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        text = str(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
    else:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _money(value: Any) -> Decimal | None:
    number = _decimal(value)
    if number is None or abs(number) > _MAX_MONEY:
        return number
    return number.quantize(_CENTS, rounding=ROUND_HALF_UP)
