"""
BALLOTSEAL — Custom Exceptions.

Typed error hierarchy for ballot commitment, closure and proof handling.
Internal store details never cross the API boundary; every error carries a
``retryable`` flag so callers can tell transient failures from final ones.
"""


class BallotSealError(Exception):
    """Base exception for all BALLOTSEAL errors."""

    retryable = False


class InvalidInputError(BallotSealError):
    """Raised when a required field is missing or malformed."""


class DuplicateVoteError(BallotSealError):
    """Raised when a user already has a participation record for the election."""


class DuplicateTagError(BallotSealError):
    """Raised when a ballot tag already exists for the election.

    Should never happen with fresh nonces; indicates a hash bug or a replay.
    """


class NotFoundError(BallotSealError):
    """Raised when an election or ballot tag is unknown."""


class AlreadyClosedError(BallotSealError):
    """Raised when closing an election that is no longer active."""


class ElectionNotActiveError(BallotSealError):
    """Raised when an election is outside the state an operation requires."""


class LedgerError(BallotSealError):
    """Raised when the external ledger rejects or fails an anchor call."""

    retryable = True


class MalformedProofError(BallotSealError):
    """Raised when an inclusion proof or digest cannot be decoded."""


class DatabaseTransactionError(BallotSealError):
    """Raised when a database transaction fails and has been rolled back.

    The underlying SQLite message is logged, never exposed to callers.
    """

    retryable = True


class IntegrityViolationError(BallotSealError):
    """Raised when stored ballots no longer rebuild the committed Merkle root."""
