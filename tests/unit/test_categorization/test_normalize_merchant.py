from banksync.categorization.rules import normalize_merchant


def test_normalize_merchant_lowercase_and_collapse_noise():
    assert normalize_merchant("  ICA*Nära   Skogås #12 ") == "ica nara skogas 12"


def test_normalize_merchant_prefers_counterparty():
    assert normalize_merchant("KORTKÖP 221012", "Systembolaget AB") == "systembolaget ab"


def test_normalize_merchant_strips_diacritics():
    assert normalize_merchant("Hemköp Åre") == "hemkop are"


def test_normalize_merchant_empty_string():
    assert normalize_merchant("") is None
    assert normalize_merchant(None) is None
    assert normalize_merchant("***") is None
