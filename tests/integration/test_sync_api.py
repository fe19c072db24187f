"""Integration tests for sync and bank account endpoints."""

from uuid import uuid4

import httpx
import pytest
from httpx import AsyncClient

from fake_bank import booked, transactions_page


def _serve(fake_bank, account_id="acc-1"):
    fake_bank.on("GET", f"/accounts/{account_id}/", httpx.Response(200, json={"id": account_id}))
    fake_bank.on("GET", f"/accounts/{account_id}/details/", httpx.Response(200, json={"account": {}}))
    fake_bank.on(
        "GET",
        f"/accounts/{account_id}/transactions/",
        transactions_page(booked=[booked("t1", "-45"), booked("t2", "-12", description="SL Access")]),
    )


@pytest.mark.asyncio
async def test_sync_then_cooldown(client: AsyncClient, auth_headers, fake_bank, bank_account):
    _serve(fake_bank)

    first = await client.post("/api/v1/sync", json={"bank_account_id": str(bank_account.id)}, headers=auth_headers)
    assert first.status_code == 200
    assert first.json()["inserted"] == 2
    assert first.json()["noop"] is False

    second = await client.post("/api/v1/sync", json={"bank_account_id": str(bank_account.id)}, headers=auth_headers)
    assert second.status_code == 200
    assert second.json()["noop"] is True
    assert second.json()["reason"] == "cooldown"

    listed = await client.get("/api/v1/transactions", headers=auth_headers)
    assert listed.json()["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_sync_rate_limited(client: AsyncClient, auth_headers, fake_bank, bank_account):
    fake_bank.on("GET", "/accounts/acc-1/", httpx.Response(429, headers={"Retry-After": "1800"}))

    response = await client.post(
        "/api/v1/sync", json={"bank_account_id": str(bank_account.id)}, headers=auth_headers
    )

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "1800"
    assert response.json()["code"] == "UPSTREAM_RATE_LIMIT"


@pytest.mark.asyncio
async def test_sync_unknown_account(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/sync", json={"bank_account_id": str(uuid4())}, headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["code"] == "BANK_ACCOUNT_NOT_FOUND"


@pytest.mark.asyncio
async def test_sync_malformed_id(client: AsyncClient, auth_headers):
    response = await client.post("/api/v1/sync", json={"bank_account_id": "abc"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


@pytest.mark.asyncio
async def test_sync_all_selected(client: AsyncClient, auth_headers, fake_bank, bank_account):
    _serve(fake_bank)

    response = await client.post("/api/v1/sync/all", json={}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["completed"] == 1
    assert data["results"][0]["inserted"] == 2


@pytest.mark.asyncio
async def test_missing_aggregator_credentials(client: AsyncClient, auth_headers, bank_account):
    from banksync.api.deps import get_aggregator_config
    from banksync.core.exceptions import ConfigurationError
    from banksync.main import app

    def missing():
        raise ConfigurationError("CONFIG_MISSING", {"missing": ["GOCARDLESS_SECRET_ID"]})

    app.dependency_overrides[get_aggregator_config] = missing

    response = await client.post(
        "/api/v1/sync", json={"bank_account_id": str(bank_account.id)}, headers=auth_headers
    )

    assert response.status_code == 500
    assert response.json()["code"] == "CONFIG_MISSING"


@pytest.mark.asyncio
async def test_select_account(client: AsyncClient, auth_headers, bank_account):
    response = await client.patch(
        f"/api/v1/bank-accounts/{bank_account.id}", json={"is_selected": False}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["is_selected"] is False

    selected = await client.post("/api/v1/sync/all", headers=auth_headers)
    assert selected.json()["total"] == 0


@pytest.mark.asyncio
async def test_select_unknown_account(client: AsyncClient, auth_headers):
    response = await client.patch(f"/api/v1/bank-accounts/{uuid4()}", json={"is_selected": True}, headers=auth_headers)

    assert response.status_code == 404
