"""Institution and country listing schemas."""

from pydantic import BaseModel


class CountryResponse(BaseModel):
    code: str


class InstitutionResponse(BaseModel):
    """Bank offered by the aggregator for a country."""

    id: str
    name: str
    bic: str | None = None
    logo: str | None = None
    transaction_total_days: str | int | None = None
