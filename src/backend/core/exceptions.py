"""
Domain errors for the voting workflow.

Raised by the vote service and the stores it drives; the API layer maps
them to HTTP responses.
"""


class VotingError(Exception):
    """Base exception for vote operations."""

    pass


class CandidateUnavailableError(VotingError):
    """Candidate does not exist or is not accepting votes."""

    def __init__(self, candidate_id: str):
        self.candidate_id = candidate_id
        super().__init__(f"Candidate {candidate_id} not found or not active")


class AlreadyVotedError(VotingError):
    """The voter already has a vote on record."""

    def __init__(self, voter_id: str):
        self.voter_id = voter_id
        super().__init__(f"Voter {voter_id} has already voted")


class DuplicateVoterError(AlreadyVotedError):
    """The votes store rejected a second vote for the same voter."""

    pass


class NotVotedError(VotingError):
    """The voter has no vote on record."""

    def __init__(self, voter_id: str):
        self.voter_id = voter_id
        super().__init__(f"Voter {voter_id} has not voted yet")


class VoteConflictError(VotingError):
    """A vote record was modified concurrently."""

    def __init__(self, vote_id: str):
        self.vote_id = vote_id
        super().__init__(f"Vote {vote_id} was modified by another request")
