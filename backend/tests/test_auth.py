"""
Tests for auth.py - LINE Login authorize URL, token exchange, ID token checks, revoke.
"""
import pytest
import sys
import os
import time
from urllib.parse import parse_qs, urlparse

import httpx
from jose import jwt

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from auth import AUTHORIZE_URL, REVOKE_URL, TOKEN_URL, AuthError, LineOAuthService


def service(handler=None) -> LineOAuthService:
    http = httpx.Client(transport=httpx.MockTransport(handler)) if handler else None
    return LineOAuthService("1622864685", "channel-secret", "https://todo.example.com/auth", http=http)


def id_token(secret="channel-secret", **overrides) -> str:
    now = int(time.time())
    claims = {
        "iss": "https://access.line.me",
        "sub": "U5fa9b1534778c27d104143614d17fadd",
        "aud": "1622864685",
        "iat": now,
        "exp": now + 3600,
        "name": "Choopong",
        "picture": "https://profile.line-scdn.net/abc",
    }
    claims.update(overrides)
    # None drops the claim entirely
    claims = {key: value for key, value in claims.items() if value is not None}
    return jwt.encode(claims, secret, algorithm="HS256")


class TestAuthorization:

    def test_generate_state(self):
        oauth = service()
        state = oauth.generate_state()
        assert len(state) == 40
        assert state != oauth.generate_state()

    def test_authorization_url(self):
        url = urlparse(service().authorization_url("state-123"))
        query = parse_qs(url.query)

        assert f"{url.scheme}://{url.netloc}{url.path}" == AUTHORIZE_URL
        assert query == {
            "response_type": ["code"],
            "client_id": ["1622864685"],
            "redirect_uri": ["https://todo.example.com/auth"],
            "state": ["state-123"],
            "scope": ["openid profile"],
        }


class TestExchangeCode:

    def test_success(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"access_token": "at", "id_token": "it"})

        token = service(handler).exchange_code("code-1")

        assert token == {"access_token": "at", "id_token": "it"}
        assert seen["url"] == TOKEN_URL
        assert seen["form"]["grant_type"] == ["authorization_code"]
        assert seen["form"]["code"] == ["code-1"]
        assert seen["form"]["client_secret"] == ["channel-secret"]

    def test_rejected(self):
        oauth = service(lambda request: httpx.Response(400, text='{"error":"invalid_grant"}'))
        with pytest.raises(AuthError, match="invalid_grant"):
            oauth.exchange_code("expired")

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("boom")

        with pytest.raises(AuthError, match="Token request failed"):
            service(handler).exchange_code("code-1")


class TestExtractIdToken:

    def test_valid_token(self):
        token = service().extract_id_token(id_token())

        assert token.sub == "U5fa9b1534778c27d104143614d17fadd"
        assert token.name == "Choopong"
        assert token.picture == "https://profile.line-scdn.net/abc"

    def test_expired(self):
        past = int(time.time()) - 7200
        with pytest.raises(AuthError):
            service().extract_id_token(id_token(iat=past, exp=past + 3600))

    def test_wrong_audience(self):
        with pytest.raises(AuthError):
            service().extract_id_token(id_token(aud="someone-else"))

    @pytest.mark.parametrize("claim", ["aud", "exp", "iat"])
    def test_missing_required_claim(self, claim):
        with pytest.raises(AuthError):
            service().extract_id_token(id_token(**{claim: None}))

    def test_issued_in_the_future(self):
        later = int(time.time()) + 86400
        with pytest.raises(AuthError, match="issued in the future"):
            service().extract_id_token(id_token(iat=later, exp=later + 3600))

    def test_small_clock_skew_is_accepted(self):
        soon = int(time.time()) + 5
        assert service().extract_id_token(id_token(iat=soon)).name == "Choopong"

    def test_wrong_signature(self):
        with pytest.raises(AuthError):
            service().extract_id_token(id_token(secret="not-the-secret"))

    def test_malformed(self):
        with pytest.raises(AuthError):
            service().extract_id_token("invalid token")


class TestSignout:

    def test_success(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200)

        service(handler).signout("access-abc")

        assert seen["url"] == REVOKE_URL
        assert seen["form"]["access_token"] == ["access-abc"]

    def test_rejected_raises_body(self):
        body = '{"error":"invalid_request","error_description":"The access token malformed"}'
        oauth = service(lambda request: httpx.Response(400, text=body))

        with pytest.raises(AuthError) as excinfo:
            oauth.signout("dummy")
        assert str(excinfo.value) == body
