from __future__ import annotations

import time
from typing import Any, Optional

import jwt  # type: ignore[import]
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import InvalidAudienceError, InvalidIssuerError, InvalidTokenError  # type: ignore[import]

from vdsearch.app import config
from vdsearch.app.auth.schemas import AuthContext, IssuedToken

_bearer_scheme = HTTPBearer(auto_error=False)


def _get_app_secret() -> str:
    if not config.APP_JWT_SECRET:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin token signing secret is not configured",
        )
    return config.APP_JWT_SECRET


def get_admin_password() -> str:
    if not config.ADMIN_PASSWORD:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin password is not configured",
        )
    return config.ADMIN_PASSWORD


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def issue_admin_token(session_id: str) -> IssuedToken:
    """Sign a short-lived admin token bound to a view session."""

    secret = _get_app_secret()
    issued_at = int(time.time())
    expires_at = issued_at + config.ADMIN_ACCESS_TOKEN_TTL_SECONDS
    payload = {
        "sub": f"admin:{session_id}",
        "role": "admin",
        "sid": session_id,
        "iss": config.APP_JWT_ISSUER,
        "aud": config.APP_JWT_AUDIENCE,
        "iat": issued_at,
        "exp": expires_at,
    }
    token = jwt.encode(payload, secret, algorithm=config.APP_JWT_ALGORITHM)
    return IssuedToken(access_token=token, expires_at=expires_at)


def _decode_token(token: str) -> AuthContext:
    secret = _get_app_secret()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            secret,
            algorithms=[config.APP_JWT_ALGORITHM],
            audience=config.APP_JWT_AUDIENCE,
            issuer=config.APP_JWT_ISSUER,
            options={
                "require": ["exp", "iat", "sub"],
            },
        )
    except InvalidAudienceError as exc:
        raise _unauthorized("Invalid token audience") from exc
    except InvalidIssuerError as exc:
        raise _unauthorized("Invalid token issuer") from exc
    except InvalidTokenError as exc:
        raise _unauthorized("Invalid authentication credentials") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise _unauthorized("Invalid token subject")

    role = payload.get("role", "")
    if not isinstance(role, str):
        role = str(role)

    session_id = payload.get("sid")
    if not isinstance(session_id, str):
        session_id = None

    issued_at = payload.get("iat")
    if not isinstance(issued_at, (int, type(None))):
        issued_at = None

    expires_at = payload.get("exp")
    if not isinstance(expires_at, (int, type(None))):
        expires_at = None

    return AuthContext(
        subject=subject,
        role=role,
        session_id=session_id,
        issued_at=issued_at,
        expires_at=expires_at,
        raw_token=token,
        claims=payload,
    )


async def require_admin_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthContext:
    if credentials is None:
        raise _unauthorized("Missing bearer token")

    context = _decode_token(credentials.credentials)
    if not context.is_admin:
        raise _forbidden("Admin privileges required")
    request.state.auth = context
    return context
