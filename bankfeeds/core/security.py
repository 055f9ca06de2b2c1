"""Security utilities: bearer token validation and tenant resolution."""

from dataclasses import dataclass

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from bankfeeds.config import settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class TenantContext:
    """The authenticated user and the company (tenant) they are acting in."""

    user_id: int
    company_id: int


def decode_access_token(token: str) -> dict:
    """Decode and validate an access token issued by the accounting app."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e


def create_access_token(user_id: int, company_id: int | None, **claims) -> str:
    """Issue a token for a user/company pair (used by tooling and tests)."""
    payload = {"sub": str(user_id), **claims}
    if company_id is not None:
        payload["company_id"] = str(company_id)
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


# ── Auth Dependencies ─────────────────────────────
security_scheme = HTTPBearer()


async def get_tenant_context(
    credentials: HTTPAuthorizationCredentials = Depends(security_scheme),
) -> TenantContext:
    """FastAPI dependency: validate the bearer token and return its tenant."""
    payload = decode_access_token(credentials.credentials)

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing subject",
        )

    company_id = payload.get("company_id")
    if not company_id:
        # Logged in, but no company selected yet
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No company selected",
        )

    try:
        return TenantContext(user_id=int(subject), company_id=int(company_id))
    except (TypeError, ValueError) as e:
        logger.warning("malformed_token_claims", sub=subject, company_id=company_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed token claims",
        ) from e
