"""Integration tests for transaction endpoints."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from banksync.repositories.transaction import TransactionRepository


@pytest.fixture
async def setup_transactions(db_session: AsyncSession, user_id, bank_account) -> list:
    repo = TransactionRepository(db_session)
    rows = []
    for transaction_id, txn_date, category in [
        ("t1", date(2026, 9, 5), "dining"),
        ("t2", date(2026, 9, 20), "groceries"),
        ("t3", date(2026, 10, 2), "groceries"),
    ]:
        rows.append(
            {
                "user_id": user_id,
                "bank_account_id": bank_account.id,
                "transaction_id": transaction_id,
                "txn_date": txn_date,
                "amount": Decimal("-99.50"),
                "currency": "SEK",
                "description": "Test",
                "counterparty": None,
                "merchant_key": "test",
                "mcc": None,
                "category": category,
                "category_source": "auto",
                "status": "booked",
            }
        )
    await repo.insert_ignore_conflicts(rows)
    transactions, _ = await repo.search(user_id)
    return transactions


@pytest.mark.asyncio
async def test_list_transactions(client: AsyncClient, auth_headers, setup_transactions):
    response = await client.get("/api/v1/transactions", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["pagination"] == {"page": 1, "limit": 50, "total": 3, "pages": 1}
    assert [t["transaction_id"] for t in data["transactions"]] == ["t3", "t2", "t1"]
    assert Decimal(str(data["transactions"][0]["amount"])) == Decimal("-99.50")


@pytest.mark.asyncio
async def test_filter_and_paginate(client: AsyncClient, auth_headers, setup_transactions):
    response = await client.get(
        "/api/v1/transactions",
        params={"category": "groceries", "start_date": "2026-09-01", "limit": 1, "page": 2},
        headers=auth_headers,
    )

    data = response.json()
    assert data["pagination"]["total"] == 2
    assert data["pagination"]["pages"] == 2
    assert [t["transaction_id"] for t in data["transactions"]] == ["t2"]


@pytest.mark.asyncio
async def test_other_users_see_nothing(client: AsyncClient, setup_transactions):
    from banksync.core.security import create_access_token

    headers = {"Authorization": f"Bearer {create_access_token(uuid4())}"}
    response = await client.get("/api/v1/transactions", headers=headers)

    assert response.json()["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_set_manual_category(client: AsyncClient, auth_headers, setup_transactions):
    txn = setup_transactions[0]

    response = await client.patch(
        f"/api/v1/transactions/{txn.id}/category", json={"category": "Rent"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["category"] == "rent"
    assert response.json()["category_source"] == "manual"


@pytest.mark.asyncio
async def test_unknown_category_rejected(client: AsyncClient, auth_headers, setup_transactions):
    response = await client.patch(
        f"/api/v1/transactions/{setup_transactions[0].id}/category",
        json={"category": "yachts"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


@pytest.mark.asyncio
async def test_unknown_transaction(client: AsyncClient, auth_headers):
    response = await client.patch(
        f"/api/v1/transactions/{uuid4()}/category", json={"category": "rent"}, headers=auth_headers
    )

    assert response.status_code == 404
    assert response.json()["code"] == "TRANSACTION_NOT_FOUND"
