"""Google OAuth2 client — the handshake half of Google sign-in.

Learn: Two flows end in the same ExternalProfile:
- Web redirect: /auth/google sends the browser to Google with a random
  `state`; Google calls back with `code`; we exchange the code for an
  access token and fetch the userinfo document.
- Mobile: the app already holds a Google ID token; we ask Google's
  tokeninfo endpoint to validate it and check it was minted for our
  client id (`aud`).

What happens to the profile afterwards is the linker's job. Errors here
are logged with detail and raised as OAuthError with a generic message,
so provider responses never reach our clients.
"""

from typing import Optional
from urllib.parse import urlencode

import httpx
import structlog

from eventease.auth.linker import ExternalProfile

logger = structlog.get_logger()

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_SCOPE = "openid email profile"


class OAuthError(Exception):
    """Google sign-in could not be completed."""

    def __init__(self, message: str = "Google OAuth authentication failed"):
        super().__init__(message)


def _truthy(value) -> bool:
    # tokeninfo sends "true"/"false" strings, userinfo sends booleans
    return value is True or str(value).lower() == "true"


def profile_from_claims(claims: dict) -> ExternalProfile:
    """Map OIDC claims (userinfo or tokeninfo) onto an ExternalProfile."""
    external_id = claims.get("sub") or claims.get("id")
    email = claims.get("email")
    if not external_id or not email:
        raise OAuthError()
    return ExternalProfile(
        external_id=str(external_id),
        email=email,
        display_name=claims.get("name"),
        avatar_url=claims.get("picture"),
        email_verified=_truthy(claims.get("email_verified", False)),
    )


class GoogleOAuthClient:
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        callback_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            follow_redirects=False,
        )

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": GOOGLE_SCOPE,
            "state": state,
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ExternalProfile:
        """Authorization code → access token → userinfo → profile."""
        try:
            async with self._client() as client:
                token_response = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "redirect_uri": self.callback_url,
                        "grant_type": "authorization_code",
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    logger.error("oauth.no_access_token")
                    raise OAuthError()

                userinfo_response = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                userinfo_response.raise_for_status()
                claims = userinfo_response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "oauth.exchange_http_error",
                status_code=e.response.status_code,
                url=str(e.request.url),
            )
            raise OAuthError() from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("oauth.exchange_error", error=str(e))
            raise OAuthError() from e

        if not isinstance(claims, dict):
            raise OAuthError()
        return profile_from_claims(claims)

    async def verify_id_token(self, id_token: str) -> ExternalProfile:
        """Validate a Google ID token obtained by a mobile client."""
        try:
            async with self._client() as client:
                response = await client.get(
                    GOOGLE_TOKENINFO_URL, params={"id_token": id_token}
                )
                response.raise_for_status()
                claims = response.json()
        except httpx.HTTPStatusError as e:
            logger.info("oauth.id_token_rejected", status_code=e.response.status_code)
            raise OAuthError("Invalid Google token") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("oauth.tokeninfo_error", error=str(e))
            raise OAuthError("Invalid Google token") from e

        if not isinstance(claims, dict) or claims.get("aud") != self.client_id:
            logger.warning("oauth.id_token_wrong_audience")
            raise OAuthError("Invalid Google token")
        try:
            return profile_from_claims(claims)
        except OAuthError:
            raise OAuthError("Invalid Google token")
