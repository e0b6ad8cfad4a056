import httpx
import pytest

from translatebot.errors import TokenExchangeError
from translatebot.services.twitch_auth import DEFAULT_EXPIRES_IN, TwitchAuthClient


def make_client(handler):
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TwitchAuthClient("cid", "secret", http=http)


@pytest.mark.asyncio
async def test_refresh_posts_form_and_parses_tokens():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = request.content.decode()
        return httpx.Response(
            200,
            json={"access_token": "a2", "refresh_token": "r2", "expires_in": 13000},
        )

    client = make_client(handler)
    exchange = await client.refresh("r1")
    await client.close()

    assert seen["path"] == "/oauth2/token"
    assert "grant_type=refresh_token" in seen["body"]
    assert "refresh_token=r1" in seen["body"]
    assert exchange.access_token == "a2"
    assert exchange.refresh_token == "r2"
    assert exchange.expires_in == 13000


@pytest.mark.asyncio
async def test_refresh_defaults_missing_expiry():
    client = make_client(lambda request: httpx.Response(200, json={"access_token": "a2"}))
    exchange = await client.refresh("r1")

    assert exchange.expires_in == DEFAULT_EXPIRES_IN
    assert exchange.refresh_token is None


@pytest.mark.asyncio
async def test_refresh_error_status_raises():
    client = make_client(
        lambda request: httpx.Response(400, json={"status": 400, "message": "Invalid refresh token"})
    )

    with pytest.raises(TokenExchangeError) as excinfo:
        await client.refresh("bad")
    assert excinfo.value.status_code == 400
    assert "Invalid refresh token" in str(excinfo.value)


@pytest.mark.asyncio
async def test_refresh_without_access_token_raises():
    client = make_client(lambda request: httpx.Response(200, json={"refresh_token": "r2"}))

    with pytest.raises(TokenExchangeError):
        await client.refresh("r1")


@pytest.mark.asyncio
async def test_validate_returns_identity_or_none():
    def handler(request):
        if request.headers["Authorization"] == "OAuth good":
            return httpx.Response(
                200,
                json={"user_id": "42", "login": "bot", "expires_in": 3600, "scopes": ["user:bot"]},
            )
        return httpx.Response(401, json={"status": 401, "message": "invalid access token"})

    client = make_client(handler)

    validated = await client.validate("good")
    assert validated.user_id == "42"
    assert validated.expires_in == 3600
    assert validated.scopes == ["user:bot"]
    assert await client.validate("bad") is None
