"""Country and institution listings."""

import re

from banksync.core.exceptions import InvalidRequestError
from banksync.upstream.aggregator import AggregatorClient

_COUNTRY = re.compile(r"^[A-Z]{2}$")


def validate_country(country: str | None, correlation_id: str | None = None) -> str:
    """Upper-case a two-letter country code or raise INVALID_COUNTRY."""
    code = (country or "").strip().upper()
    if not _COUNTRY.match(code):
        raise InvalidRequestError("INVALID_COUNTRY", {"country": (country or "")[:8]}, correlation_id)
    return code


class InstitutionService:
    def __init__(self, aggregator: AggregatorClient):
        self.aggregator = aggregator

    @staticmethod
    def list_countries(countries: list[str]) -> list[dict]:
        return [{"code": code} for code in countries]

    async def list_institutions(self, country: str | None, correlation_id: str | None = None) -> list[dict]:
        code = validate_country(country or "SE", correlation_id)
        return await self.aggregator.list_institutions(code, correlation_id)
