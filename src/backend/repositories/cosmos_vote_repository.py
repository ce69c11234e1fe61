"""
Cosmos DB Vote repository.

Partition key is voter_id and the container carries a unique key policy on
/voter_id, so the store itself rejects a second vote from the same voter.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from core.exceptions import DuplicateVoterError, VoteConflictError
from db.cosmos_session import (
    VOTES_CONTAINER,
    create_item,
    delete_item,
    query_items,
    replace_item,
)
from models.cosmos_documents import VoteDocument

logger = logging.getLogger(__name__)


class CosmosVoteRepository:
    """Repository for vote operations using Cosmos DB."""

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_by_voter(self, voter_id: str) -> Optional[VoteDocument]:
        """Get a voter's vote (single-partition query)."""
        query = """
            SELECT * FROM c
            WHERE c.voter_id = @voter_id
        """
        results = await query_items(
            VOTES_CONTAINER,
            query,
            parameters=[{"name": "@voter_id", "value": voter_id}],
            partition_key=voter_id,
            max_items=1,
        )
        if not results:
            return None
        return VoteDocument.from_item(results[0])

    async def count_by_candidate(self) -> dict[str, int]:
        """Get live vote counts for every referenced candidate (cross-partition)."""
        query = """
            SELECT c.candidate_id, COUNT(1) as count FROM c
            GROUP BY c.candidate_id
        """
        results = await query_items(VOTES_CONTAINER, query)

        counts: dict[str, int] = {}
        for row in results:
            counts[row["candidate_id"]] = int(row["count"])
        return counts

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create(self, voter_id: str, candidate_id: str) -> VoteDocument:
        """
        Create a vote record.

        Raises:
            DuplicateVoterError: the store already holds a vote for this voter
        """
        vote = VoteDocument(voter_id=voter_id, candidate_id=candidate_id)
        try:
            created = await create_item(VOTES_CONTAINER, vote.model_dump(mode="json"))
        except CosmosResourceExistsError as e:
            raise DuplicateVoterError(voter_id) from e

        vote.etag = created.get("_etag") if isinstance(created, dict) else None
        logger.debug(f"Created vote {vote.id} for candidate {candidate_id}")
        return vote

    async def update_candidate(self, vote: VoteDocument, candidate_id: str) -> VoteDocument:
        """
        Repoint an existing vote to another candidate.

        Uses the etag read with the vote, so a concurrent change or delete of
        the same record fails instead of being overwritten.

        Raises:
            VoteConflictError: the record changed or vanished since it was read
        """
        updated = vote.model_copy(
            update={"candidate_id": candidate_id, "updated_at": datetime.now(timezone.utc)}
        )
        try:
            data = await replace_item(VOTES_CONTAINER, updated.model_dump(mode="json"), etag=vote.etag)
        except (CosmosAccessConditionFailedError, CosmosResourceNotFoundError) as e:
            raise VoteConflictError(vote.id) from e

        updated.etag = data.get("_etag") if isinstance(data, dict) else None
        logger.debug(f"Repointed vote {vote.id} to candidate {candidate_id}")
        return updated

    async def delete(self, vote: VoteDocument) -> bool:
        """
        Delete a vote, conditional on the etag it was read with.

        False if it was already gone.

        Raises:
            VoteConflictError: the record was repointed since it was read
        """
        try:
            await delete_item(VOTES_CONTAINER, vote.id, partition_key=vote.voter_id, etag=vote.etag)
        except CosmosResourceNotFoundError:
            return False
        except CosmosAccessConditionFailedError as e:
            raise VoteConflictError(vote.id) from e
        logger.debug(f"Deleted vote {vote.id}")
        return True
