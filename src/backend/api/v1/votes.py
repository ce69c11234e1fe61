"""
Vote management endpoints.

Every authenticated voter holds at most one vote. They can cast it, move it
to another active candidate, withdraw it, and look it up.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from api.deps import get_current_user, get_tally_service, get_vote_service
from core.exceptions import (
    AlreadyVotedError,
    CandidateUnavailableError,
    NotVotedError,
    VoteConflictError,
)
from repositories.provider import CandidateRepositoryProtocol, get_candidate_repository
from schemas.candidate import Candidate, PositionResult
from schemas.converters import (
    candidate_document_to_schema,
    standing_to_schema,
    vote_document_to_schema,
)
from schemas.user import AuthenticatedUser
from schemas.vote import MessageResponse, Vote, VoteChangeResponse, VoteStatus
from services.tally_service import TallyService
from services.vote_service import VoteService

logger = structlog.get_logger(__name__)

router = APIRouter()

CANDIDATE_UNAVAILABLE = "Candidate not found or not active"
ALREADY_VOTED = "You have already voted"
NOT_VOTED = "You have not voted yet"
SERVER_ERROR = "Server error"


@router.get("/candidates", response_model=list[Candidate])
async def list_active_candidates(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    candidate_repo: Annotated[CandidateRepositoryProtocol, Depends(get_candidate_repository)],
) -> list[Candidate]:
    """List the candidates currently accepting votes."""
    candidates = await candidate_repo.list_active()
    return [candidate_document_to_schema(c) for c in candidates]


@router.get("/status", response_model=VoteStatus)
async def get_vote_status(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    vote_service: Annotated[VoteService, Depends(get_vote_service)],
) -> VoteStatus:
    """
    Show the current voter's vote.

    The candidate details are joined at read time and are empty if the
    candidate has been deleted since.
    """
    try:
        return await vote_service.get_vote_status(current_user.id)
    except Exception as e:
        logger.exception("get_vote_status_failed", voter_id=current_user.id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR,
        )


@router.get("/results", response_model=list[PositionResult])
async def get_results(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    tally_service: Annotated[TallyService, Depends(get_tally_service)],
) -> list[PositionResult]:
    """Current standings for every contested position."""
    standings = await tally_service.get_results()
    return [standing_to_schema(s) for s in standings]


@router.post("/{candidate_id}", response_model=Vote, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    candidate_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    vote_service: Annotated[VoteService, Depends(get_vote_service)],
) -> Vote:
    """
    Cast the current voter's vote.

    Requirements:
    - Candidate must exist and be active
    - Voter must not have voted already
    """
    try:
        vote = await vote_service.cast_vote(current_user.id, candidate_id)
    except CandidateUnavailableError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CANDIDATE_UNAVAILABLE)
    except AlreadyVotedError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_VOTED)
    except Exception as e:
        logger.exception("cast_vote_failed", voter_id=current_user.id, candidate_id=candidate_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR,
        )

    return vote_document_to_schema(vote)


@router.put("/{candidate_id}", response_model=VoteChangeResponse)
async def change_vote(
    candidate_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    vote_service: Annotated[VoteService, Depends(get_vote_service)],
) -> VoteChangeResponse:
    """Move the current voter's vote to another active candidate."""
    try:
        vote = await vote_service.change_vote(current_user.id, candidate_id)
    except CandidateUnavailableError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=CANDIDATE_UNAVAILABLE)
    except NotVotedError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NOT_VOTED)
    except VoteConflictError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Your vote was changed by another request, please retry",
        )
    except Exception as e:
        logger.exception("change_vote_failed", voter_id=current_user.id, candidate_id=candidate_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR,
        )

    return VoteChangeResponse(message="Vote changed successfully", vote=vote_document_to_schema(vote))


@router.delete("", response_model=MessageResponse)
async def delete_vote(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    vote_service: Annotated[VoteService, Depends(get_vote_service)],
) -> MessageResponse:
    """Withdraw the current voter's vote."""
    try:
        await vote_service.delete_vote(current_user.id)
    except NotVotedError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=NOT_VOTED)
    except VoteConflictError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Your vote was changed by another request, please retry",
        )
    except Exception as e:
        logger.exception("delete_vote_failed", voter_id=current_user.id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR,
        )

    return MessageResponse(message="Vote deleted successfully")
