"""Error taxonomy shared by the credential and assessment services.

Each error carries the single user-facing message the API returns, and an
HTTP status the exception handler in main.py maps it to.  Services raise;
they never return error strings.
"""

from __future__ import annotations


class AnchorServiceError(Exception):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(AnchorServiceError):
    """Bad input.  Never reaches the ledger."""

    status_code = 422


class PreconditionFailed(AnchorServiceError):
    status_code = 409


class NotFound(PreconditionFailed):
    status_code = 404


class NotOwner(PreconditionFailed):
    status_code = 403


class IssuerDidMissing(PreconditionFailed):
    def __init__(self, message: str = "Link a DID before approving credentials.") -> None:
        super().__init__(message)


class SubjectDidMissing(PreconditionFailed):
    def __init__(
        self,
        message: str = "Candidate has no DID - ask them to create one before verification.",
    ) -> None:
        super().__init__(message)


class InvalidSeed(PreconditionFailed):
    status_code = 422

    def __init__(self, message: str = "Invalid seed.") -> None:
        super().__init__(message)


class AlreadyInState(AnchorServiceError):
    status_code = 409


class AlreadyVerified(AlreadyInState):
    def __init__(self, message: str = "Credential already verified.") -> None:
        super().__init__(message)


class NotVerified(AlreadyInState):
    def __init__(
        self, message: str = "Only verified credentials can be unverified."
    ) -> None:
        super().__init__(message)


class AnchoringFailed(AnchorServiceError):
    """The ledger rejected the write or it never left this process.

    stage is one of ``submission`` (network/signing) or ``revert``
    (included with status 0, or rejected during gas estimation).
    """

    status_code = 502

    def __init__(self, reason: str, *, stage: str = "submission") -> None:
        super().__init__(f"Failed to anchor credential: {reason}")
        self.reason = reason
        self.stage = stage


class AnchoringIndeterminate(AnchorServiceError):
    """Outcome of a ledger write is unknown; reconcile before retrying."""

    status_code = 504

    def __init__(self, reason: str, *, tx_hash: str | None = None) -> None:
        super().__init__(f"Anchoring outcome unknown: {reason}")
        self.reason = reason
        self.tx_hash = tx_hash


class LedgerReadFailed(AnchorServiceError):
    """A read-only ledger call errored.  Nothing was written."""

    status_code = 502

    def __init__(self, reason: str) -> None:
        super().__init__(f"Ledger read failed: {reason}")
        self.reason = reason


class GradingUnavailable(AnchorServiceError):
    status_code = 503

    def __init__(self, reason: str) -> None:
        super().__init__(f"Grading unavailable: {reason}")
        self.reason = reason
