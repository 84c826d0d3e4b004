"""
LINE Login (OAuth 2.0 + OpenID Connect) for the web dashboard.
"""
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://access.line.me/oauth2/v2.1/authorize"
TOKEN_URL = "https://api.line.me/oauth2/v2.1/token"
REVOKE_URL = "https://api.line.me/oauth2/v2.1/revoke"
SCOPES = ["openid", "profile"]
# Clock skew tolerated between LINE and this server
IAT_LEEWAY_SECONDS = 60


class AuthError(Exception):
    pass


@dataclass
class IdToken:
    sub: str
    name: str = ""
    picture: str = ""


class LineOAuthService:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        http: Optional[httpx.Client] = None
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self.http = http or httpx.Client(timeout=10.0)

    def generate_state(self) -> str:
        seed = f"{int(time.time())}{secrets.token_hex(16)}"
        return hashlib.sha1(seed.encode("utf-8")).hexdigest()

    def authorization_url(self, state: str) -> str:
        query = urlencode({
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "state": state,
            "scope": " ".join(SCOPES),
        })
        return f"{AUTHORIZE_URL}?{query}"

    def exchange_code(self, code: str) -> dict:
        """Trade an authorization code for access and ID tokens."""
        try:
            response = self.http.post(TOKEN_URL, data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_url,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            })
        except httpx.HTTPError as e:
            raise AuthError(f"Token request failed: {e}") from e
        if response.status_code != 200:
            raise AuthError(response.text)
        return response.json()

    def extract_id_token(self, token: str) -> IdToken:
        """Verify an HS256 ID token signed with the channel secret and read its profile claims."""
        try:
            claims = jwt.decode(
                token,
                self.client_secret,
                algorithms=["HS256"],
                audience=self.client_id,
                options={"require_aud": True, "require_exp": True, "require_iat": True}
            )
        except JWTError as e:
            raise AuthError(str(e)) from e
        if claims["iat"] > time.time() + IAT_LEEWAY_SECONDS:
            raise AuthError("ID token issued in the future")
        if not claims.get("sub"):
            raise AuthError("ID token has no subject")
        return IdToken(
            sub=claims["sub"],
            name=claims.get("name", ""),
            picture=claims.get("picture", "")
        )

    def signout(self, access_token: str):
        try:
            response = self.http.post(REVOKE_URL, data={
                "access_token": access_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            })
        except httpx.HTTPError as e:
            raise AuthError(f"Revoke request failed: {e}") from e
        if response.status_code != 200:
            logger.warning("Token revoke rejected: %s", response.text)
            raise AuthError(response.text)
