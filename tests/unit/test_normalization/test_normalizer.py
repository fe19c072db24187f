from datetime import date
from decimal import Decimal

from banksync.normalization.normalizer import (
    card_sign,
    clean_description,
    fallback_transaction_id,
    looks_like_card,
    normalize,
)

TODAY = date(2026, 10, 18)


def test_normalize_full_record():
    raw = {
        "transactionId": "abc-1",
        "bookingDate": "2026-10-01",
        "valueDate": "2026-10-02",
        "transactionAmount": {"amount": "-45.90", "currency": "sek"},
        "remittanceInformationUnstructured": "ICA NARA",
        "creditorName": "ICA Nära Skogås",
        "merchantCategoryCode": "5411",
    }
    txn = normalize(raw, "acc-1", today=TODAY)
    assert txn.transaction_id == "abc-1"
    assert txn.date == date(2026, 10, 1)
    assert txn.amount == Decimal("-45.90")
    assert txn.currency == "SEK"
    assert txn.description == "ICA NARA"
    assert txn.counterparty == "ICA Nära Skogås"
    assert txn.mcc == "5411"
    assert txn.status == "booked"


def test_identifier_fallback_order():
    base = {"bookingDate": "2026-10-01", "transactionAmount": {"amount": "1", "currency": "SEK"}}
    assert normalize({**base, "internalTransactionId": "int-9"}, "acc").transaction_id == "int-9"
    assert normalize({**base, "entryReference": "ref-3"}, "acc").transaction_id == "ref-3"


def test_missing_identifier_is_deterministic_hash():
    raw = {
        "bookingDate": "2026-10-01",
        "transactionAmount": {"amount": "-10.00", "currency": "SEK"},
        "remittanceInformationUnstructured": "Pressbyrån",
    }
    first = normalize(raw, "acc-1", today=TODAY)
    second = normalize(dict(raw), "acc-1", today=TODAY)
    assert first.transaction_id == second.transaction_id
    assert len(first.transaction_id) == 64
    assert first.transaction_id == fallback_transaction_id(
        "acc-1", date(2026, 10, 1), Decimal("-10.00"), "SEK", "Pressbyrån"
    )
    assert normalize(raw, "acc-2", today=TODAY).transaction_id != first.transaction_id


def test_value_date_then_today():
    raw = {"valueDate": "2026-09-30T10:00:00", "transactionAmount": {"amount": "1"}}
    assert normalize(raw, "acc").date == date(2026, 9, 30)
    assert normalize({"bookingDate": "not a date"}, "acc", today=TODAY).date == TODAY


def test_malformed_amount_becomes_zero():
    txn = normalize({"transactionAmount": {"amount": "abc"}}, "acc", today=TODAY)
    assert txn.amount == Decimal("0")
    assert txn.currency is None


def test_out_of_range_amount_becomes_zero():
    for amount in ("1E+15", "-1000000000000", "NaN", "Infinity"):
        txn = normalize({"transactionAmount": {"amount": amount, "currency": "SEK"}}, "acc", today=TODAY)
        assert txn.amount == Decimal("0"), amount

    largest = normalize({"transactionAmount": {"amount": "-999999999999.99"}}, "acc", today=TODAY)
    assert largest.amount == Decimal("-999999999999.99")


def test_invalid_currency_is_dropped():
    for currency in ("SEKX", "kronor", "S1K", ""):
        txn = normalize({"transactionAmount": {"amount": "1", "currency": currency}}, "acc", today=TODAY)
        assert txn.currency is None, currency

    assert normalize({"transactionAmount": {"amount": "1", "currency": " eur "}}, "acc").currency == "EUR"


def test_description_fallbacks():
    assert normalize({"cardTransaction": {"merchantName": "Espresso House"}}, "a").description == "Espresso House"
    assert normalize({"debtorName": "Employer AB"}, "a").description == "Employer AB"
    assert normalize({}, "a").description == "Transaction"


def test_mcc_from_card_transaction():
    txn = normalize({"cardTransaction": {"merchantCategoryCode": 5812}}, "acc")
    assert txn.mcc == "5812"


def test_pending_status_is_kept():
    assert normalize({"transactionId": "p1"}, "acc", status="pending").status == "pending"


def test_clean_description_strips_boilerplate():
    assert clean_description("KORTKÖP  ICA*NARA | SKOGAS") == "ICA NARA SKOGAS"
    assert clean_description("  ") == "Transaction"
    assert clean_description(None) == "Transaction"


def test_card_detection_and_sign():
    assert looks_like_card({"account": {"product": "Mastercard Gold"}}) is True
    assert looks_like_card({"cashAccountType": "CACC", "name": "Lönekonto"}) is False
    assert card_sign(Decimal("99"), True) == Decimal("-99")
    assert card_sign(Decimal("-99"), True) == Decimal("-99")
    assert card_sign(Decimal("99"), False) == Decimal("99")
