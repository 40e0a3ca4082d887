"""FastAPI dependencies for user authentication.

Tokens are accepted from an `Authorization: Bearer <token>` header or from
the `token` cookie set at login.
"""

from fastapi import HTTPException, status

from menu_digitizer_service.auth.security import TokenIssuer
from menu_digitizer_service.models.user_models import User
from menu_digitizer_service.services.auth_service import AuthService

TOKEN_COOKIE_NAME = "token"


def extract_token(authorization: str | None, cookie_token: str | None) -> str | None:
    """Pick the bearer token from the Authorization header, else the cookie.

    Args:
        authorization: Raw Authorization header value
        cookie_token: Value of the token cookie

    Returns:
        The token string, or None if neither source carries one
    """
    if authorization and authorization.startswith("Bearer"):
        parts = authorization.split(" ", 1)
        token = parts[1].strip() if len(parts) == 2 else ""
        return token or None
    if cookie_token and cookie_token != "none":
        return cookie_token
    return None


async def get_current_user_from_token(
    authorization: str | None,
    cookie_token: str | None,
    token_issuer: TokenIssuer,
    auth_service: AuthService,
) -> User:
    """Resolve the authenticated user for a request.

    Args:
        authorization: Authorization header (injected by FastAPI)
        cookie_token: token cookie (injected by FastAPI)
        token_issuer: Issuer used to verify the token
        auth_service: Service used to load the user

    Returns:
        User: The authenticated user

    Raises:
        HTTPException: 401 if the token is missing or invalid, or the user no longer exists
    """
    token = extract_token(authorization, cookie_token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = token_issuer.decode(token)
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized to access this route",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await auth_service.get_user(claims["sub"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user
