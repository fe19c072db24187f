import httpx
import pytest

from banksync.core.exceptions import UpstreamAuthError, UpstreamTimeoutError
from banksync.upstream.tokens import TokenManager


@pytest.mark.asyncio
async def test_token_exchange_posts_credentials(aggregator_config, fake_bank, http_client):
    tokens = TokenManager(aggregator_config, http_client)

    token = await tokens.get_token("cid-12345678")

    assert token == "token-1"
    assert fake_bank.bodies("POST", "/token/new/") == [{"secret_id": "test-id", "secret_key": "test-key"}]


@pytest.mark.asyncio
async def test_token_is_cached_until_refresh(aggregator_config, fake_bank, http_client):
    tokens = TokenManager(aggregator_config, http_client)

    assert await tokens.get_token() == "token-1"
    assert await tokens.get_token() == "token-1"
    assert tokens.exchange_count == 1

    assert await tokens.refresh() == "token-2"
    assert tokens.exchange_count == 2


@pytest.mark.asyncio
async def test_token_rejected(aggregator_config, fake_bank, http_client):
    fake_bank.on("POST", "/token/new/", httpx.Response(401, json={"detail": "Authentication failed"}))
    tokens = TokenManager(aggregator_config, http_client)

    with pytest.raises(UpstreamAuthError) as exc_info:
        await tokens.get_token("cid-12345678")

    assert exc_info.value.error_code == "UPSTREAM_TOKEN_ERROR"
    assert exc_info.value.status == 401
    assert "Authentication failed" in exc_info.value.details["bodySnippet"]
    assert exc_info.value.correlation_id == "cid-12345678"


@pytest.mark.asyncio
async def test_token_body_without_access(aggregator_config, fake_bank, http_client):
    fake_bank.on("POST", "/token/new/", httpx.Response(200, json={"refresh": "r"}))
    tokens = TokenManager(aggregator_config, http_client)

    with pytest.raises(UpstreamAuthError) as exc_info:
        await tokens.get_token()

    assert exc_info.value.details["reason"] == "malformed"


@pytest.mark.asyncio
async def test_token_timeout(aggregator_config, fake_bank, http_client):
    def slow(request):
        raise httpx.ReadTimeout("too slow", request=request)

    fake_bank.on("POST", "/token/new/", slow)
    tokens = TokenManager(aggregator_config, http_client)

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        await tokens.get_token()

    assert exc_info.value.error_code == "UPSTREAM_TIMEOUT"
