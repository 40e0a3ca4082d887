"""Password hashing and JWT issuance."""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from passlib.context import CryptContext

from menu_digitizer_service.models.user_models import User, UserRole

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """Generate a bcrypt hash for a password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


class TokenIssuer:
    """Issues and verifies signed access tokens.

    Tokens carry the user id in `sub` and the account role in `role`.
    """

    def __init__(self, secret: str, expires_in: timedelta = timedelta(days=30)) -> None:
        """Initialize the issuer.

        Args:
            secret: HMAC secret used to sign tokens
            expires_in: Token lifetime

        Raises:
            ValueError: If secret is empty
        """
        if not secret:
            raise ValueError("A JWT secret must be provided")
        self.secret = secret
        self.expires_in = expires_in

    def issue(self, user: User) -> str:
        """Create a signed token for a user."""
        now = datetime.now(UTC)
        payload = {
            "sub": user.user_id,
            "role": user.role.value,
            "iat": now,
            "exp": now + self.expires_in,
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def decode(self, token: str) -> dict[str, Any] | None:
        """Verify a token and return its claims.

        Returns:
            Claims dict, or None if the token is invalid, expired or malformed
        """
        try:
            payload: dict[str, Any] = jwt.decode(token, self.secret, algorithms=[JWT_ALGORITHM])
        except jwt.PyJWTError:
            return None

        if not payload.get("sub"):
            return None
        if payload.get("role") not in {role.value for role in UserRole}:
            return None
        return payload
