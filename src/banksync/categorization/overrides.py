"""User-defined category rules.

A rule pairs a match type with a pattern (or amount bounds), an optional
currency filter and a target category. Rules are evaluated in ascending
priority, then ascending creation time; the first match wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class MatchType(str, Enum):
    TRANSACTION_ID = "transaction_id"
    COUNTERPARTY_EXACT = "counterparty_exact"
    COUNTERPARTY_CONTAINS = "counterparty_contains"
    DESCRIPTION_CONTAINS = "description_contains"
    REGEX = "regex"
    AMOUNT_EQUALS = "amount_equals"
    AMOUNT_BETWEEN = "amount_between"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"


AMOUNT_MATCH_TYPES = frozenset({MatchType.AMOUNT_EQUALS, MatchType.AMOUNT_BETWEEN})


@dataclass(frozen=True)
class UserRule:
    """One reusable rule, detached from the database row it came from."""

    match_type: MatchType
    category: str
    pattern: str = ""
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None
    currency: str | None = None
    priority: int = 100
    created_at: datetime | None = None
    is_enabled: bool = True


@dataclass(frozen=True)
class MatchContext:
    """Lower-cased views of the transaction that rules are matched against."""

    description: str
    counterparty: str
    text: str
    amount: Decimal | None
    currency: str | None
    transaction_id: str | None


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        logger.warning("Ignoring user rule with invalid regex", extra={"pattern_length": len(pattern)})
        return None


def _pattern(rule: UserRule) -> str:
    return (rule.pattern or "").strip().lower()


def _match_transaction_id(rule: UserRule, ctx: MatchContext) -> bool:
    return bool(ctx.transaction_id) and _pattern(rule) == ctx.transaction_id.lower()


def _match_counterparty_exact(rule: UserRule, ctx: MatchContext) -> bool:
    return bool(ctx.counterparty) and ctx.counterparty == _pattern(rule)


def _match_counterparty_contains(rule: UserRule, ctx: MatchContext) -> bool:
    pattern = _pattern(rule)
    return bool(ctx.counterparty and pattern) and pattern in ctx.counterparty


def _match_description_contains(rule: UserRule, ctx: MatchContext) -> bool:
    pattern = _pattern(rule)
    return bool(ctx.description and pattern) and pattern in ctx.description


def _match_starts_with(rule: UserRule, ctx: MatchContext) -> bool:
    pattern = _pattern(rule)
    return bool(ctx.text and pattern) and ctx.text.startswith(pattern)


def _match_ends_with(rule: UserRule, ctx: MatchContext) -> bool:
    pattern = _pattern(rule)
    return bool(ctx.text and pattern) and ctx.text.endswith(pattern)


def _match_regex(rule: UserRule, ctx: MatchContext) -> bool:
    if not rule.pattern:
        return False
    compiled = _compile(rule.pattern)
    return compiled is not None and compiled.search(ctx.text) is not None


def _match_amount_equals(rule: UserRule, ctx: MatchContext) -> bool:
    return ctx.amount is not None and rule.amount_min is not None and ctx.amount == rule.amount_min


def _match_amount_between(rule: UserRule, ctx: MatchContext) -> bool:
    if ctx.amount is None:
        return False
    if rule.amount_min is not None and ctx.amount < rule.amount_min:
        return False
    if rule.amount_max is not None and ctx.amount > rule.amount_max:
        return False
    return True


_MATCHERS: dict[MatchType, Callable[[UserRule, MatchContext], bool]] = {
    MatchType.TRANSACTION_ID: _match_transaction_id,
    MatchType.COUNTERPARTY_EXACT: _match_counterparty_exact,
    MatchType.COUNTERPARTY_CONTAINS: _match_counterparty_contains,
    MatchType.DESCRIPTION_CONTAINS: _match_description_contains,
    MatchType.REGEX: _match_regex,
    MatchType.AMOUNT_EQUALS: _match_amount_equals,
    MatchType.AMOUNT_BETWEEN: _match_amount_between,
    MatchType.STARTS_WITH: _match_starts_with,
    MatchType.ENDS_WITH: _match_ends_with,
}


def _created_key(created_at: datetime | None) -> datetime:
    if created_at is None:
        return _EPOCH
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at.astimezone(timezone.utc)


def ordered(rules: Iterable[UserRule]) -> list[UserRule]:
    """Enabled rules by ascending priority, then ascending creation time."""
    enabled = [rule for rule in rules if rule.is_enabled]
    return sorted(enabled, key=lambda rule: (rule.priority, _created_key(rule.created_at)))


def rule_matches(rule: UserRule, ctx: MatchContext) -> bool:
    if rule.currency and ctx.currency and rule.currency.upper() != ctx.currency.upper():
        return False
    return _MATCHERS[MatchType(rule.match_type)](rule, ctx)


def first_matching(rules: Iterable[UserRule], ctx: MatchContext) -> UserRule | None:
    for rule in ordered(rules):
        if rule_matches(rule, ctx):
            return rule
    return None
