"""Integration tests for category rule endpoints."""

from uuid import uuid4

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_list_delete(client: AsyncClient, auth_headers):
    created = await client.post(
        "/api/v1/category-rules",
        json={"match_type": "counterparty_contains", "pattern": " Swish ", "category": "transfer", "priority": 5},
        headers=auth_headers,
    )
    assert created.status_code == 201
    rule = created.json()
    assert rule["pattern"] == "Swish"
    assert rule["is_enabled"] is True

    await client.post(
        "/api/v1/category-rules",
        json={"match_type": "amount_between", "amount_min": "-500", "amount_max": "-100", "category": "fees"},
        headers=auth_headers,
    )

    listed = (await client.get("/api/v1/category-rules", headers=auth_headers)).json()
    assert [r["category"] for r in listed] == ["transfer", "fees"]

    deleted = await client.delete(f"/api/v1/category-rules/{rule['id']}", headers=auth_headers)
    assert deleted.status_code == 204
    again = await client.delete(f"/api/v1/category-rules/{rule['id']}", headers=auth_headers)
    assert again.status_code == 404
    assert again.json()["code"] == "RULE_NOT_FOUND"


@pytest.mark.asyncio
async def test_text_rule_needs_pattern(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/category-rules", json={"match_type": "regex", "category": "rent"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["code"] == "MISSING_FIELDS"


@pytest.mark.asyncio
async def test_amount_rule_needs_bounds(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/category-rules", json={"match_type": "amount_equals", "category": "rent"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["details"]["missing"] == ["amount_min"]


@pytest.mark.asyncio
async def test_unknown_match_type(client: AsyncClient, auth_headers):
    response = await client.post(
        "/api/v1/category-rules", json={"match_type": "soundex", "pattern": "x", "category": "rent"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_REQUEST"


@pytest.mark.asyncio
async def test_delete_is_user_scoped(client: AsyncClient, auth_headers):
    from banksync.core.security import create_access_token

    rule = (
        await client.post(
            "/api/v1/category-rules",
            json={"match_type": "starts_with", "pattern": "ica", "category": "groceries"},
            headers=auth_headers,
        )
    ).json()
    other = {"Authorization": f"Bearer {create_access_token(uuid4())}"}

    response = await client.delete(f"/api/v1/category-rules/{rule['id']}", headers=other)

    assert response.status_code == 404
