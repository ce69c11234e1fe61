"""
Shared dependencies for API endpoints.

Includes:
- Caller identity from the bearer token
- Admin guard
- Service construction from the injected repositories
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.security import verify_access_token
from repositories.provider import (
    CandidateRepositoryProtocol,
    VoteRepositoryProtocol,
    get_candidate_repository,
    get_vote_repository,
)
from schemas.user import AuthenticatedUser
from services.tally_service import TallyService
from services.vote_service import VoteService

logger = structlog.get_logger(__name__)

# auto_error=False so a missing header yields 401 rather than 403
security = HTTPBearer(auto_error=False)


# =============================================================================
# Helper Functions
# =============================================================================


def _payload_to_user(payload: dict) -> AuthenticatedUser | None:
    """Build the caller identity from verified token claims."""
    user_id = payload.get("sub")
    if not user_id:
        return None
    return AuthenticatedUser(
        id=str(user_id),
        is_admin=bool(payload.get("is_admin", False)),
        email=payload.get("email"),
    )


# =============================================================================
# Authentication
# =============================================================================


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> AuthenticatedUser:
    """
    Extract and validate the caller from the JWT token.

    Raises:
        HTTPException: If the token is missing, invalid or has no subject.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = _payload_to_user(payload)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_admin_user(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
) -> AuthenticatedUser:
    """
    Ensure the current user is an admin.

    Raises:
        HTTPException: If user is not an admin.
    """
    if not current_user.is_admin:
        logger.warning("non_admin_access_attempt", user_id=current_user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as admin",
        )
    return current_user


# =============================================================================
# Services
# =============================================================================


async def get_vote_service(
    candidate_repo: Annotated[CandidateRepositoryProtocol, Depends(get_candidate_repository)],
    vote_repo: Annotated[VoteRepositoryProtocol, Depends(get_vote_repository)],
) -> VoteService:
    return VoteService(candidate_repo, vote_repo)


async def get_tally_service(
    candidate_repo: Annotated[CandidateRepositoryProtocol, Depends(get_candidate_repository)],
    vote_repo: Annotated[VoteRepositoryProtocol, Depends(get_vote_repository)],
) -> TallyService:
    return TallyService(candidate_repo, vote_repo)
