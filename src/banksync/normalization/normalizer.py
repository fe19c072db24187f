"""Map upstream transaction payloads into one canonical shape.

Banks behind the aggregator fill different subsets of the Berlin-Group
transaction fields. Everything here is pure: no I/O and no failure on odd
input. A malformed amount becomes zero and a missing date becomes today, so a
single bad record never aborts a sync.
"""

import hashlib
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

FALLBACK_DESCRIPTION = "Transaction"

_BOILERPLATE_PREFIX = re.compile(
    r"^\s*(KORTK[ÖO]P|VISA ?PURCHASE|MC(?:B)? ?K[ÖO]P|CARD ?PURCHASE|AUTOGIRO|ÖVERFÖRING|BETALNING)\b[:\- ]*",
    re.IGNORECASE,
)
_SEPARATORS = re.compile(r"[|_*#;]+")
_WHITESPACE = re.compile(r"\s{2,}")

_CARD_SIGNAL = re.compile(r"\bcard\b|\bcredit\b|visa|mastercard|amex", re.IGNORECASE)
_CURRENCY = re.compile(r"^[A-Z]{3}$")

# Largest magnitude the Numeric(14, 2) amount column holds.
MAX_AMOUNT = Decimal("999999999999.99")


@dataclass(frozen=True)
class NormalizedTransaction:
    """Canonical transaction as produced from one upstream record."""

    transaction_id: str
    date: date
    amount: Decimal
    currency: str | None
    description: str
    counterparty: str
    status: str = "booked"
    mcc: str | None = None


def _first_str(*candidates: Any) -> str | None:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _parse_date(value: Any) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _parse_amount(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
        return None
    return amount


def pick_date(raw: dict, today: date | None = None) -> date:
    """Booking date, else value date, else today."""
    for key in ("bookingDate", "valueDate"):
        parsed = _parse_date(raw.get(key))
        if parsed is not None:
            return parsed
    return today or date.today()


def pick_description(raw: dict) -> str:
    """Most merchant-like free text of the record, or "Transaction"."""
    card = _as_dict(raw.get("cardTransaction"))
    return (
        _first_str(
            card.get("merchantName"),
            raw.get("remittanceInformationUnstructured"),
            raw.get("remittanceInformationStructured"),
            raw.get("creditorName"),
            raw.get("debtorName"),
            raw.get("additionalInformation"),
        )
        or FALLBACK_DESCRIPTION
    )


def pick_mcc(raw: dict) -> str | None:
    card = _as_dict(raw.get("cardTransaction"))
    code = raw.get("merchantCategoryCode") or card.get("merchantCategoryCode")
    if isinstance(code, int) and not isinstance(code, bool):
        code = str(code)
    if isinstance(code, str) and code.strip().isdigit():
        return code.strip()
    return None


def _format_amount(amount: Decimal | None) -> str:
    if amount is None:
        return ""
    return format(amount.normalize(), "f")


def fallback_transaction_id(
    account_id: str, txn_date: date, amount: Decimal | None, currency: str | None, description: str
) -> str:
    """Deterministic id for records that carry no upstream identifier."""
    key = "|".join(
        [account_id, txn_date.isoformat(), _format_amount(amount), currency or "", description]
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def normalize(
    raw: dict, account_id: str, status: str = "booked", today: date | None = None
) -> NormalizedTransaction:
    """
    Normalize one upstream transaction.

    Args:
        raw: Transaction object as returned by the aggregator
        account_id: Upstream account id (part of the fallback identifier)
        status: "booked" or "pending", depending on the list it came from
        today: Date used when the record has no usable date

    Returns:
        NormalizedTransaction with a non-empty identifier
    """
    raw = _as_dict(raw)
    amount_obj = _as_dict(raw.get("transactionAmount"))
    amount = _parse_amount(amount_obj.get("amount"))
    currency = (_first_str(amount_obj.get("currency")) or "").upper()
    currency = currency if _CURRENCY.match(currency) else None

    txn_date = pick_date(raw, today)
    description = pick_description(raw)
    counterparty = _first_str(raw.get("creditorName"), raw.get("debtorName")) or ""

    transaction_id = _first_str(
        raw.get("transactionId"), raw.get("internalTransactionId"), raw.get("entryReference")
    )
    if transaction_id is None:
        transaction_id = fallback_transaction_id(account_id, txn_date, amount, currency, description)

    return NormalizedTransaction(
        transaction_id=transaction_id,
        date=txn_date,
        amount=amount if amount is not None else Decimal("0"),
        currency=currency,
        description=description,
        counterparty=counterparty,
        status=status,
        mcc=pick_mcc(raw),
    )


def clean_description(text: str | None) -> str:
    """Strip bank boilerplate and separator noise from display text."""
    cleaned = _BOILERPLATE_PREFIX.sub("", text or "")
    cleaned = _SEPARATORS.sub(" ", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    if len(cleaned) < 2:
        return FALLBACK_DESCRIPTION
    return cleaned


def looks_like_card(payload: Any) -> bool:
    """True if any string in an account details payload hints at a card account."""
    if isinstance(payload, str):
        return bool(_CARD_SIGNAL.search(payload))
    if isinstance(payload, list):
        return any(looks_like_card(item) for item in payload)
    if isinstance(payload, dict):
        return any(looks_like_card(value) for value in payload.values())
    return False


def card_sign(amount: Decimal, is_credit_card: bool) -> Decimal:
    """Card accounts report purchases as positive; flip them to outflows."""
    if is_credit_card and amount > 0:
        return -amount
    return amount
