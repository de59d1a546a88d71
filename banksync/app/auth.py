import secrets
from fastapi import Depends, Request, status
from fastapi.responses import PlainTextResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from banksync.config import get_settings

REALM = "Secure Area"

basic_scheme = HTTPBasic(realm=REALM, auto_error=False)


class BasicAuthError(Exception):
    """Raised when a request lacks valid basic auth credentials."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


async def basic_auth_error_handler(request: Request, exc: BasicAuthError) -> PlainTextResponse:
    """Answer with a plain-text 401 and a Basic challenge."""
    return PlainTextResponse(
        exc.message,
        status_code=status.HTTP_401_UNAUTHORIZED,
        headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
    )


def require_basic_auth(credentials: HTTPBasicCredentials = Depends(basic_scheme)) -> str:
    """Check the request's basic auth credentials against the configured user."""
    settings = get_settings()

    if credentials is None:
        raise BasicAuthError("Authentication required")

    user_ok = secrets.compare_digest(credentials.username.encode(), settings.basic_auth_user.encode())
    password_ok = secrets.compare_digest(credentials.password.encode(), settings.basic_auth_password.encode())
    if not (user_ok and password_ok):
        raise BasicAuthError("Invalid credentials")

    return credentials.username
