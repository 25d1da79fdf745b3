"""Auth token check for administrative endpoints.

Finishing an experiment requires the configured token, sent verbatim in
the Authorization header.
"""
import hashlib
import hmac
from fastapi import HTTPException, Security, Depends
from fastapi.security import APIKeyHeader
from typing import Optional

from abexp.config import Settings, get_settings

# Auth token header
auth_token_header = APIKeyHeader(name="Authorization", auto_error=False)


def hash_token(token: str) -> str:
    """
    Hash a token with SHA256.

    Both sides are hashed before comparison so the comparison runs on
    equal-length digests.
    """
    return hashlib.sha256(token.encode()).hexdigest()


def verify_token(token: str, expected: str) -> bool:
    """Constant-time comparison of a presented token with the expected one."""
    return hmac.compare_digest(hash_token(token), hash_token(expected))


async def require_auth_token(
    token: Optional[str] = Security(auth_token_header),
    settings: Settings = Depends(get_settings)
) -> None:
    """
    Dependency that rejects requests without the configured token.

    Usage:
        @router.patch("/experiments/{id}", dependencies=[Depends(require_auth_token)])

    Raises:
        HTTPException: 401 if the header is missing, 403 if the token is wrong
    """
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Token"}
        )

    if not verify_token(token, settings.auth_token):
        raise HTTPException(status_code=403, detail="Forbidden")
