"""Deterministic transaction categorization.

Aggregated bank feeds rarely carry a usable category, so one is inferred from
the description, the counterparty, an optional MCC and the direction of the
amount.

Resolution order, first hit wins:
1. manual category set by the user on the transaction
2. the user's own rules (see overrides.py)
3. MCC hint, ignored for inbound amounts unless it maps to income
4. weighted keyword scoring over description + counterparty
5. "income" for inbound amounts, else "uncategorized"

This is intentionally rule-based so it's fast, explainable and free of
network calls.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from .overrides import MatchContext, UserRule, first_matching

UNCATEGORIZED = "uncategorized"
INCOME = "income"

# Public taxonomy.
CATEGORIES: tuple[str, ...] = (
    "salary",
    "groceries",
    "dining",
    "shopping",
    "utilities",
    "rent",
    "transport",
    "travel",
    "health",
    "insurance",
    "subscription",
    "entertainment",
    "tax",
    "fees",
    "refund",
    "interest",
    "p2p",
    "transfer",
    "education",
    INCOME,
    UNCATEGORIZED,
)

MCC_CATEGORIES: dict[str, str] = {
    "5411": "groceries",
    "5499": "groceries",
    "5812": "dining",
    "5814": "dining",
    "7832": "entertainment",
    "5541": "transport",
    "5542": "transport",
    "4112": "transport",
    "5651": "shopping",
    "5691": "shopping",
    "4812": "utilities",
    "4899": "utilities",
    "5912": "health",
    "7011": "travel",
}


def _p(expr: str) -> re.Pattern[str]:
    return re.compile(expr, re.IGNORECASE)


# Ordering matters: on equal scores the earlier category wins.
# Vendor names weigh 5-6, generic terms 2-3.
KEYWORD_RULES: list[tuple[str, list[tuple[re.Pattern[str], int]]]] = [
    ("salary", [
        (_p(r"\b(lön|lon|salary|payroll|wages?|löner|utbetalning)\b"), 6),
    ]),
    ("groceries", [
        (_p(r"\b(ica|coop|willys|wilys|hemköp|hemkop|lidl|city gross|mathem)\b"), 6),
        (_p(r"\b(grocery|supermarket|matbutik|livs)\b"), 3),
    ]),
    ("dining", [
        (_p(r"\b(restaurang|restaurant|café|cafe|pub|coffee|espresso|starbucks|max burgers|mcdonalds?|foodora|wolt)\b"), 5),
        (_p(r"\b(pizzeria|sushi|krog|bistro)\b"), 3),
    ]),
    ("shopping", [
        (_p(r"\b(amazon|zalando|clas ?ohlson|elgiganten|ikea|apotea|h&m|systembolaget)\b"), 5),
        (_p(r"\b(shopping|retail|butik)\b"), 2),
    ]),
    ("utilities", [
        (_p(r"\b(vattenfall|ellevio|e\.on|eon|fortum)\b"), 6),
        (_p(r"\b(telia|tele2|telenor|comhem|bredband|fiber)\b"), 5),
        (_p(r"\b(electric|electricity|water|gas|energi|broadband)\b"), 3),
    ]),
    ("rent", [
        (_p(r"\b(rent|hyra|landlord|bostad|hyresavi)\b"), 6),
    ]),
    ("transport", [
        (_p(r"\b(sl|sj|arlanda express|skånetrafiken|skanetrafiken|västtrafik|vasttrafik)\b"), 6),
        (_p(r"\b(uber|bolt|taxi|circle k|preem|okq8|easypark|parkster)\b"), 5),
        (_p(r"\b(train|bus|metro|subway|pendeltåg|buss|parking|fuel|petrol|diesel)\b"), 3),
    ]),
    ("travel", [
        (_p(r"\b(hotel|hotell|ryanair|sas|norwegian|airbnb|booking\.com|wizz)\b"), 5),
        (_p(r"\b(flight|flyg|resa|travel)\b"), 3),
    ]),
    ("health", [
        (_p(r"\b(apotek|apoteket|pharmacy|doctor|dentist|tandläkare|sjukhus|vårdcentral)\b"), 5),
    ]),
    ("insurance", [
        (_p(r"\b(försäkring|forsakring|länsförsäkringar|folksam|trygg-hansa|moderna försäkringar)\b"), 6),
        (_p(r"\b(insurance)\b"), 3),
    ]),
    ("subscription", [
        (_p(r"\b(spotify|netflix|viaplay|disney\+?|hbo|tidal|icloud|onedrive|github|patreon)\b"), 5),
        (_p(r"\b(subscription|prenumeration)\b"), 2),
    ]),
    ("entertainment", [
        (_p(r"\b(filmstaden|ticketmaster|steam|playstation|xbox|nintendo)\b"), 5),
        (_p(r"\b(cinema|biograf|concert|konsert|theatre|teater)\b"), 3),
    ]),
    ("tax", [
        (_p(r"\b(skatteverket|skatt|moms|vat)\b"), 6),
    ]),
    ("fees", [
        (_p(r"\b(fee|avgift|charge|bankgiro|plusgiro)\b"), 4),
    ]),
    ("refund", [
        (_p(r"\b(refund|återbetal\w*|chargeback|return)\b"), 5),
    ]),
    ("interest", [
        (_p(r"\b(interest|ränta|ranta)\b"), 5),
    ]),
    ("p2p", [
        (_p(r"\b(swish|revolut|wise|paypal|venmo|swishbetalning)\b"), 4),
        (_p(r"\b(p2p|friends|splitwise)\b"), 2),
    ]),
    ("transfer", [
        (_p(r"\b(överföring|overforing|transfer|sepa)\b"), 3),
    ]),
    ("education", [
        (_p(r"\b(csn|udemy|coursera|universitet|university)\b"), 5),
        (_p(r"\b(school|skola|kurs|course|tuition)\b"), 3),
    ]),
]


@dataclass(frozen=True)
class CategorizeInput:
    """Fields of a transaction that categorization looks at."""

    description: str = ""
    counterparty: str = ""
    amount: Decimal | None = None
    currency: str | None = None
    transaction_id: str | None = None
    mcc: str | None = None
    manual_category: str | None = None


@dataclass(frozen=True)
class CategorizeOptions:
    manual_category: str | None = None
    user_rules: Sequence[UserRule] = field(default_factory=tuple)


def normalize_merchant(description: str | None, counterparty: str | None = None) -> str | None:
    """Normalize a merchant/description string into a stable key.

    Prefers the counterparty over the description. Diacritics are stripped,
    text is lower-cased and anything that is not a letter or digit collapses
    into single spaces. Returns None when nothing is left.
    """
    base = (counterparty or description or "").strip().lower()
    if not base:
        return None
    decomposed = unicodedata.normalize("NFKD", base)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = re.sub(r"[^a-z0-9 ]", " ", stripped)
    stripped = re.sub(r"\s{2,}", " ", stripped).strip()
    return stripped or None


def score_keywords(text: str) -> dict[str, int]:
    """Accumulated keyword weight per category (only categories that scored)."""
    scores: dict[str, int] = {}
    for category, patterns in KEYWORD_RULES:
        total = sum(weight for pattern, weight in patterns if pattern.search(text))
        if total > 0:
            scores[category] = scores.get(category, 0) + total
    return scores


def best_keyword_category(text: str) -> str | None:
    """Highest scoring category; ties go to the category listed first."""
    best: str | None = None
    best_score = 0
    for category, score in score_keywords(text).items():
        if score > best_score:
            best, best_score = category, score
    return best


def mcc_category(mcc: str | None, amount: Decimal | None) -> str | None:
    if not mcc:
        return None
    category = MCC_CATEGORIES.get(str(mcc).strip())
    if category is None:
        return None
    if amount is not None and amount > 0 and category != INCOME:
        return None
    return category


def categorize(txn: CategorizeInput, options: CategorizeOptions | None = None) -> str:
    """Assign a category to a transaction.

    Args:
        txn: Transaction fields to categorize.
        options: Manual category and the user's reusable rules, pre-fetched.

    Returns:
        A category slug. Never raises for odd input.
    """
    options = options or CategorizeOptions()

    manual = (options.manual_category or txn.manual_category or "").strip()
    if manual:
        return manual

    description = (txn.description or "").lower()
    counterparty = (txn.counterparty or "").lower()
    text = f"{description} {counterparty}".strip()

    if options.user_rules:
        ctx = MatchContext(
            description=description,
            counterparty=counterparty,
            text=text,
            amount=txn.amount,
            currency=txn.currency.upper() if txn.currency else None,
            transaction_id=txn.transaction_id,
        )
        rule = first_matching(options.user_rules, ctx)
        if rule is not None:
            return rule.category

    hinted = mcc_category(txn.mcc, txn.amount)
    if hinted:
        return hinted

    keyword = best_keyword_category(text)
    if keyword:
        return keyword

    if txn.amount is not None and txn.amount > 0:
        return INCOME
    return UNCATEGORIZED
