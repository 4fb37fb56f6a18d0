"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The token
carries only the user id (`sub`) plus issue/expiry times, signed with
HMAC. Nothing is stored server-side — deleting the user is what revokes
the token, because the gate re-resolves `sub` on every request.

Verification failures are classified so callers can tell "your session
ran out" (EXPIRED) apart from "this is not one of ours" (the rest).
A bad signature is SIGNATURE_INVALID; a header or payload segment that no
longer decodes (bad base64, bad JSON, missing claims) is MALFORMED. Either
way a token altered anywhere never verifies.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

REQUIRED_CLAIMS = ["sub", "exp", "iat"]


class TokenErrorKind(str, enum.Enum):
    MALFORMED = "malformed"
    EXPIRED = "expired"
    SIGNATURE_INVALID = "signature_invalid"


class TokenVerificationError(Exception):
    """Raised when a token cannot be trusted."""

    def __init__(self, kind: TokenErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies signed bearer tokens.

    Pure: no I/O, no state beyond the secret it was built with.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        default_lifetime: timedelta = timedelta(days=30),
    ):
        if not secret:
            raise ValueError("TokenService requires a non-empty signing secret")
        self._secret = secret
        self._algorithm = algorithm
        self.default_lifetime = default_lifetime

    def issue(self, subject_id: str, lifetime: Optional[timedelta] = None) -> str:
        """Create a signed token for subject_id."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "iat": now,
            "exp": now + (lifetime if lifetime is not None else self.default_lifetime),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Verify signature and expiry, return the claims.

        Raises TokenVerificationError on failure.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            raise TokenVerificationError(TokenErrorKind.EXPIRED, "Token has expired")
        except jwt.InvalidSignatureError:
            raise TokenVerificationError(
                TokenErrorKind.SIGNATURE_INVALID, "Token signature is invalid"
            )
        except jwt.InvalidTokenError as e:
            raise TokenVerificationError(TokenErrorKind.MALFORMED, f"Invalid token: {e}")

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise TokenVerificationError(TokenErrorKind.MALFORMED, "Token subject is empty")

        return TokenClaims(
            subject_id=subject,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
