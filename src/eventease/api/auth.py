"""Auth API — registration, login, session status, Google sign-in.

Learn: Routes for getting and dropping a bearer token:
- POST /auth/register → create a user, return token (+ cookie)
- POST /auth/login → email/password → token (+ cookie)
- GET /auth/me → current user (strict gate)
- GET /auth/status → "am I signed in?" (optional gate, never 401s)
- POST|GET /auth/logout → clear the cookie
- GET /auth/google → redirect to Google's consent screen
- GET /auth/google/callback → finish the web flow, HTML page with token
- GET /auth/failure → generic 401 for any failed Google sign-in
- POST /auth/google/login → mobile flow, Google ID token → our token

Tokens are stateless, so logout only clears the cookie; a copied token
stays valid until it expires or its user is deleted.
"""

import html
import secrets
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse

from eventease.api.deps import (
    auth_payload,
    clear_token_cookie,
    get_google,
    get_linker,
    get_settings,
    get_store,
    get_tokens,
    set_token_cookie,
)
from eventease.auth.gate import CurrentIdentity, attach_if_present, require_auth
from eventease.auth.linker import IdentityLinker
from eventease.auth.oauth import GoogleOAuthClient, OAuthError
from eventease.auth.policy import Role
from eventease.auth.store import SqlCredentialStore, normalize_email
from eventease.auth.tokens import TokenService
from eventease.config import Settings
from eventease.db.models import utcnow
from eventease.errors import AuthenticationError, LinkingFailedError
from eventease.schemas.user import (
    AuthResponse,
    GoogleLoginRequest,
    LoginRequest,
    RegisterRequest,
    UserRead,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/auth")

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE = 600
FAILURE_PATH = "/api/auth/failure"
INVALID_CREDENTIALS = "Invalid email or password"
OAUTH_DISABLED = "Google OAuth is not configured"


# ─── Password auth ───────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    store: SqlCredentialStore = Depends(get_store),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_settings),
):
    """Create an account. Admin is never self-assigned."""
    user = await store.create(
        name=body.name,
        email=body.email,
        password=body.password,
        role=body.role or Role.GUEST,
    )
    token = tokens.issue(str(user.id))
    set_token_cookie(response, token, settings)
    logger.info("auth.registered", user_id=str(user.id), role=user.role)
    return auth_payload(user, token, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    store: SqlCredentialStore = Depends(get_store),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_settings),
):
    """Login with email and password → token."""
    user = await store.find_by_email(normalize_email(body.email))
    # Same message and same bcrypt cost for unknown email and wrong password
    if user is None:
        await store.verify_password_for_unknown(body.password)
    if user is None or not await store.verify_password(user, body.password):
        logger.info("auth.login_failed")
        raise AuthenticationError(INVALID_CREDENTIALS)

    user = await store.update(user.id, last_login_at=utcnow())
    token = tokens.issue(str(user.id))
    set_token_cookie(response, token, settings)
    logger.info("auth.login", user_id=str(user.id))
    return auth_payload(user, token, "Login successful")


# ─── Session ────────────────────────────────────────────


@router.get("/me")
async def get_me(
    identity: CurrentIdentity = Depends(require_auth),
    store: SqlCredentialStore = Depends(get_store),
):
    """Get the current authenticated user's info."""
    user = await store.find_by_id(identity.id)
    if user is None:
        raise AuthenticationError("User not found")
    return {"success": True, "data": UserRead.model_validate(user)}


@router.get("/status")
async def auth_status(
    identity: Optional[CurrentIdentity] = Depends(attach_if_present),
):
    """Never fails: reports whether the request carries a usable token."""
    if identity is None:
        return {"success": True, "authenticated": False, "user": None}
    return {
        "success": True,
        "authenticated": True,
        "user": {
            "id": str(identity.id),
            "name": identity.name,
            "email": identity.email,
            "role": identity.role,
        },
    }


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(response: Response, settings: Settings = Depends(get_settings)):
    clear_token_cookie(response, settings)
    return {"success": True, "message": "Logged out successfully"}


# ─── Google OAuth (web redirect flow) ───────────────────


@router.get("/google")
async def google_redirect(
    google: Optional[GoogleOAuthClient] = Depends(get_google),
    settings: Settings = Depends(get_settings),
):
    """Send the browser to Google with a one-time state value."""
    if google is None:
        raise HTTPException(status_code=503, detail=OAUTH_DISABLED)

    state = secrets.token_urlsafe(24)
    redirect = RedirectResponse(google.authorization_url(state), status_code=302)
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=OAUTH_STATE_MAX_AGE,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/api/auth/google/callback",
    )
    return redirect


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    google: Optional[GoogleOAuthClient] = Depends(get_google),
    linker: IdentityLinker = Depends(get_linker),
    settings: Settings = Depends(get_settings),
):
    """Finish the handshake. Every failure lands on /auth/failure."""
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if google is None or error or not code:
        logger.info("oauth.callback_rejected", provider_error=error)
        return _failure_redirect()
    if not state or not expected_state or not secrets.compare_digest(
        state.encode(), expected_state.encode()
    ):
        logger.warning("oauth.state_mismatch")
        return _failure_redirect()

    try:
        profile = await google.exchange_code(code)
        result = await linker.link(profile)
    except (OAuthError, LinkingFailedError) as e:
        logger.info("oauth.callback_failed", error=str(e))
        return _failure_redirect()

    page = HTMLResponse(_success_page(result.token, settings.frontend_url))
    set_token_cookie(page, result.token, settings)
    page.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth/google/callback")
    return page


@router.get("/failure")
async def google_failure():
    raise LinkingFailedError()


# ─── Google OAuth (mobile ID-token flow) ────────────────


@router.post("/google/login", response_model=AuthResponse)
async def google_login(
    body: GoogleLoginRequest,
    response: Response,
    google: Optional[GoogleOAuthClient] = Depends(get_google),
    linker: IdentityLinker = Depends(get_linker),
    settings: Settings = Depends(get_settings),
):
    """Exchange a Google ID token for one of our tokens."""
    if google is None:
        raise HTTPException(status_code=503, detail=OAUTH_DISABLED)
    try:
        profile = await google.verify_id_token(body.id_token)
    except OAuthError as e:
        raise AuthenticationError(str(e))
    result = await linker.link(profile)

    set_token_cookie(response, result.token, settings)
    return auth_payload(result.identity, result.token, "Google login successful")


@router.get("/google/login")
async def google_login_info(
    google: Optional[GoogleOAuthClient] = Depends(get_google),
):
    """Discovery endpoint for clients wiring up Google sign-in."""
    return {
        "success": True,
        "message": "Google OAuth API Running",
        "enabled": google is not None,
        "endpoints": {
            "web_oauth": "GET /api/auth/google",
            "id_token_login": "POST /api/auth/google/login",
            "status": "GET /api/auth/status",
            "me": "GET /api/auth/me",
        },
    }


# ─── Helpers ────────────────────────────────────────────


def _failure_redirect() -> RedirectResponse:
    redirect = RedirectResponse(FAILURE_PATH, status_code=302)
    redirect.delete_cookie(OAUTH_STATE_COOKIE, path="/api/auth/google/callback")
    return redirect


def _success_page(token: str, frontend_url: str) -> str:
    safe_token = html.escape(token, quote=True)
    safe_home = html.escape(frontend_url, quote=True)
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Authentication Successful</title>
  <style>
    body {{ font-family: Arial, sans-serif; display: flex; justify-content: center;
           align-items: center; height: 100vh; margin: 0; background: #667eea; }}
    .container {{ background: white; padding: 40px; border-radius: 10px;
                 text-align: center; max-width: 400px; }}
    .token {{ background: #f7fafc; padding: 15px; border-radius: 5px;
             word-break: break-all; font-size: 12px; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>Authentication Successful</h1>
    <p>Your token:</p>
    <div class="token" id="token" data-token="{safe_token}">{safe_token}</div>
    <p>Add to headers: <code>Authorization: Bearer &lt;token&gt;</code></p>
    <p><a href="{safe_home}">Go to Homepage</a></p>
  </div>
  <script>
    localStorage.setItem("token", document.getElementById("token").dataset.token);
  </script>
</body>
</html>
"""
