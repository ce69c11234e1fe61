"""
Vote service.

Implements the one-vote-per-voter workflow while keeping each candidate's
vote_count equal to the number of votes that reference it:

- cast:   create vote -> increment candidate
- change: decrement old candidate -> repoint vote -> increment new candidate
- delete: decrement candidate -> delete vote

The two containers cannot share a transaction, so each operation is a fixed
sequence of independent writes. Tally updates are atomic store-side patches
and one-vote-per-voter is enforced by the votes container's unique key. When
a write fails part way through, the writes already made are undone in
reverse order before the error is re-raised.
"""

from typing import Awaitable, Callable, Optional

import structlog

from core.exceptions import (
    AlreadyVotedError,
    CandidateUnavailableError,
    NotVotedError,
)
from models.cosmos_documents import CandidateDocument, VoteDocument
from repositories.provider import CandidateRepositoryProtocol, VoteRepositoryProtocol
from schemas.converters import vote_status_from_documents
from schemas.vote import VoteStatus

logger = structlog.get_logger(__name__)

UndoStep = Callable[[], Awaitable[object]]


class VoteService:
    """Cast, change and delete a voter's single vote."""

    def __init__(
        self,
        candidate_repo: CandidateRepositoryProtocol,
        vote_repo: VoteRepositoryProtocol,
    ):
        self.candidate_repo = candidate_repo
        self.vote_repo = vote_repo

    async def _get_active_candidate(self, candidate_id: str) -> CandidateDocument:
        candidate = await self.candidate_repo.get_by_id(candidate_id)
        if candidate is None or not candidate.is_active:
            raise CandidateUnavailableError(candidate_id)
        return candidate

    async def _take_off_tally(self, operation: str, voter_id: str, candidate_id: str) -> bool:
        """
        Decrement a candidate's tally for a vote leaving it.

        A refused decrement on a candidate that still exists means the tally
        was already zero while a vote pointed at it, usually because a cast
        had not yet added its increment. The decrement is then lost and the
        tally drifts high until reconciled, so it is logged as drift.
        """
        if await self.candidate_repo.decrement_vote_count(candidate_id):
            return True
        if await self.candidate_repo.get_by_id(candidate_id) is not None:
            logger.warning(
                "vote_tally_drift",
                operation=operation,
                voter_id=voter_id,
                candidate_id=candidate_id,
            )
        return False

    async def _undo(self, operation: str, voter_id: str, steps: list[UndoStep]) -> None:
        """Run undo steps newest first. A failing step is logged and the rest still run."""
        for step in reversed(steps):
            try:
                await step()
            except Exception as e:
                logger.error(
                    "vote_compensation_failed",
                    operation=operation,
                    voter_id=voter_id,
                    error=str(e),
                )

    async def cast_vote(self, voter_id: str, candidate_id: str) -> VoteDocument:
        """
        Record a first vote for an active candidate.

        Raises:
            CandidateUnavailableError: candidate missing or withdrawn
            AlreadyVotedError: the voter already has a vote (DuplicateVoterError
                when the store rejected the write)
        """
        candidate = await self._get_active_candidate(candidate_id)

        # Fail fast; the unique key on the votes container is the real guard
        if await self.vote_repo.get_by_voter(voter_id) is not None:
            raise AlreadyVotedError(voter_id)

        vote = await self.vote_repo.create(voter_id, candidate.id)

        try:
            funded = await self.candidate_repo.increment_vote_count(candidate.id)
        except Exception:
            await self._undo("cast", voter_id, [lambda: self.vote_repo.delete(vote)])
            raise

        if not funded:
            # Candidate deleted between the check and the increment
            logger.warning("vote_cast_for_missing_candidate", voter_id=voter_id, candidate_id=candidate.id)

        logger.info("vote_cast", voter_id=voter_id, candidate_id=candidate.id, vote_id=vote.id)
        return vote

    async def change_vote(self, voter_id: str, new_candidate_id: str) -> VoteDocument:
        """
        Move an existing vote to another active candidate.

        The previous candidate is decremented even if withdrawn, and skipped
        if it no longer exists.

        Raises:
            CandidateUnavailableError: new candidate missing or withdrawn
            NotVotedError: the voter has no vote to change
            VoteConflictError: the vote was modified concurrently
        """
        new_candidate = await self._get_active_candidate(new_candidate_id)

        vote = await self.vote_repo.get_by_voter(voter_id)
        if vote is None:
            raise NotVotedError(voter_id)

        old_candidate_id = vote.candidate_id
        undo: list[UndoStep] = []

        try:
            if await self._take_off_tally("change", voter_id, old_candidate_id):
                undo.append(lambda: self.candidate_repo.increment_vote_count(old_candidate_id))

            updated = await self.vote_repo.update_candidate(vote, new_candidate.id)
            undo.append(lambda: self.vote_repo.update_candidate(updated, old_candidate_id))

            await self.candidate_repo.increment_vote_count(new_candidate.id)
        except Exception:
            await self._undo("change", voter_id, undo)
            raise

        logger.info(
            "vote_changed",
            voter_id=voter_id,
            vote_id=vote.id,
            from_candidate_id=old_candidate_id,
            to_candidate_id=new_candidate.id,
        )
        return updated

    async def delete_vote(self, voter_id: str) -> None:
        """
        Remove the voter's vote and take it off the candidate's tally.

        Raises:
            NotVotedError: the voter has no vote (or it vanished concurrently)
            VoteConflictError: the vote was repointed after it was read
        """
        vote = await self.vote_repo.get_by_voter(voter_id)
        if vote is None:
            raise NotVotedError(voter_id)

        undo: list[UndoStep] = []
        if await self._take_off_tally("delete", voter_id, vote.candidate_id):
            undo.append(lambda: self.candidate_repo.increment_vote_count(vote.candidate_id))

        try:
            deleted = await self.vote_repo.delete(vote)
        except Exception:
            await self._undo("delete", voter_id, undo)
            raise

        if not deleted:
            # Another request deleted it first and already took it off the tally
            await self._undo("delete", voter_id, undo)
            raise NotVotedError(voter_id)

        logger.info("vote_deleted", voter_id=voter_id, vote_id=vote.id, candidate_id=vote.candidate_id)

    async def get_vote_status(self, voter_id: str) -> VoteStatus:
        """Return the voter's vote joined with its candidate, if any."""
        vote = await self.vote_repo.get_by_voter(voter_id)
        candidate: Optional[CandidateDocument] = None
        if vote is not None:
            candidate = await self.candidate_repo.get_by_id(vote.candidate_id)
        return vote_status_from_documents(vote, candidate)
