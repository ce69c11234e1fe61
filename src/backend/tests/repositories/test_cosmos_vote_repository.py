"""
Tests for Cosmos DB vote repository.
"""

import uuid
from unittest.mock import patch

import pytest
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from core.exceptions import AlreadyVotedError, DuplicateVoterError, VoteConflictError
from models.cosmos_documents import VoteDocument


@pytest.fixture
def sample_vote_doc():
    """Create a sample vote document."""
    return VoteDocument(
        id=str(uuid.uuid4()),
        voter_id="voter-1",
        candidate_id=str(uuid.uuid4()),
        etag='"etag-1"',
    )


@pytest.mark.unit
class TestCosmosVoteRepository:
    """Test CosmosVoteRepository operations."""

    @pytest.mark.asyncio
    async def test_repository_instantiation(self) -> None:
        """Test that repository can be instantiated."""
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        repo = CosmosVoteRepository()
        assert repo is not None

    @pytest.mark.asyncio
    async def test_get_by_voter_returns_vote(self, sample_vote_doc) -> None:
        """The lookup stays inside the voter's partition."""
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.query_items") as mock_query:
            item = sample_vote_doc.model_dump(mode="json")
            item["_etag"] = '"etag-7"'
            mock_query.return_value = [item]

            repo = CosmosVoteRepository()
            result = await repo.get_by_voter("voter-1")

            assert result is not None
            assert result.candidate_id == sample_vote_doc.candidate_id
            assert result.etag == '"etag-7"'
            assert mock_query.call_args.kwargs["partition_key"] == "voter-1"

    @pytest.mark.asyncio
    async def test_get_by_voter_returns_none(self) -> None:
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.query_items") as mock_query:
            mock_query.return_value = []

            repo = CosmosVoteRepository()
            assert await repo.get_by_voter("voter-1") is None

    @pytest.mark.asyncio
    async def test_count_by_candidate(self) -> None:
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.query_items") as mock_query:
            mock_query.return_value = [
                {"candidate_id": "a", "count": 2},
                {"candidate_id": "b", "count": 1},
            ]

            repo = CosmosVoteRepository()
            counts = await repo.count_by_candidate()

            assert counts == {"a": 2, "b": 1}
            assert "GROUP BY c.candidate_id" in mock_query.call_args.args[1]


@pytest.mark.unit
class TestCosmosVoteRepositoryWrites:
    """Test vote writes and the store-level guarantees they rely on."""

    @pytest.mark.asyncio
    async def test_create_returns_vote_with_etag(self) -> None:
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.create_item") as mock_create:
            mock_create.return_value = {"_etag": '"etag-1"'}

            repo = CosmosVoteRepository()
            vote = await repo.create("voter-1", "cand-1")

            assert vote.voter_id == "voter-1"
            assert vote.candidate_id == "cand-1"
            assert vote.etag == '"etag-1"'
            container, body = mock_create.call_args.args
            assert container == "votes"
            assert body["voter_id"] == "voter-1"
            assert "etag" not in body

    @pytest.mark.asyncio
    async def test_create_duplicate_voter_raises(self) -> None:
        """The unique key rejection becomes a DuplicateVoterError."""
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.create_item") as mock_create:
            mock_create.side_effect = CosmosResourceExistsError(status_code=409, message="Conflict")

            repo = CosmosVoteRepository()
            with pytest.raises(DuplicateVoterError) as exc_info:
                await repo.create("voter-1", "cand-1")

            assert isinstance(exc_info.value, AlreadyVotedError)
            assert exc_info.value.voter_id == "voter-1"

    @pytest.mark.asyncio
    async def test_update_candidate_uses_etag(self, sample_vote_doc) -> None:
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.replace_item") as mock_replace:
            mock_replace.return_value = {"_etag": '"etag-2"'}

            repo = CosmosVoteRepository()
            updated = await repo.update_candidate(sample_vote_doc, "cand-2")

            assert updated.candidate_id == "cand-2"
            assert updated.id == sample_vote_doc.id
            assert updated.etag == '"etag-2"'
            assert updated.updated_at >= sample_vote_doc.updated_at
            assert sample_vote_doc.candidate_id != "cand-2"
            assert mock_replace.call_args.kwargs["etag"] == '"etag-1"'

    @pytest.mark.asyncio
    async def test_update_candidate_conflict(self, sample_vote_doc) -> None:
        """A concurrent change of the same vote is reported, not overwritten."""
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.replace_item") as mock_replace:
            mock_replace.side_effect = CosmosAccessConditionFailedError(
                status_code=412, message="Precondition failed"
            )

            repo = CosmosVoteRepository()
            with pytest.raises(VoteConflictError):
                await repo.update_candidate(sample_vote_doc, "cand-2")

    @pytest.mark.asyncio
    async def test_update_candidate_deleted_vote(self, sample_vote_doc) -> None:
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.replace_item") as mock_replace:
            mock_replace.side_effect = CosmosResourceNotFoundError(status_code=404, message="Not found")

            repo = CosmosVoteRepository()
            with pytest.raises(VoteConflictError):
                await repo.update_candidate(sample_vote_doc, "cand-2")

    @pytest.mark.asyncio
    async def test_delete(self, sample_vote_doc) -> None:
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.delete_item") as mock_delete:
            repo = CosmosVoteRepository()
            assert await repo.delete(sample_vote_doc) is True
            mock_delete.assert_called_once_with(
                "votes", sample_vote_doc.id, partition_key="voter-1", etag='"etag-1"'
            )

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, sample_vote_doc) -> None:
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.delete_item") as mock_delete:
            mock_delete.side_effect = CosmosResourceNotFoundError(status_code=404, message="Not found")

            repo = CosmosVoteRepository()
            assert await repo.delete(sample_vote_doc) is False

    @pytest.mark.asyncio
    async def test_delete_of_repointed_vote_conflicts(self, sample_vote_doc) -> None:
        """A vote changed since it was read is not deleted."""
        from repositories.cosmos_vote_repository import CosmosVoteRepository

        with patch("repositories.cosmos_vote_repository.delete_item") as mock_delete:
            mock_delete.side_effect = CosmosAccessConditionFailedError(
                status_code=412, message="Precondition failed"
            )

            repo = CosmosVoteRepository()
            with pytest.raises(VoteConflictError):
                await repo.delete(sample_vote_doc)
