from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    insufficient_payment = "InsufficientPayment"
    zero_wager = "ZeroWager"
    duplicate_id = "DuplicateId"
    game_not_found = "GameNotFound"
    game_finished = "GameFinished"
    randomness_not_ready = "RandomnessNotReady"
    already_fulfilled = "AlreadyFulfilled"
    commit_mismatch = "CommitMismatch"
    already_revealed = "AlreadyRevealed"
    seed_not_ready = "SeedNotReady"
    invalid_coordinate = "InvalidCoordinate"
    cell_already_revealed = "CellAlreadyRevealed"
    already_lost = "AlreadyLost"
    unauthorized = "Unauthorized"
    not_your_delegate = "NotYourDelegate"
    self_delegation = "SelfDelegation"
    zero_delegate = "ZeroDelegate"
    transfer_failed = "TransferFailed"
    no_pending_change = "NoPendingChange"
    timelock_not_elapsed = "TimelockNotElapsed"
    out_of_range = "OutOfRange"

    @property
    def retryable(self) -> bool:
        """Whether the same call can succeed later without changing its arguments."""
        return self in _RETRYABLE


_RETRYABLE = frozenset(
    {
        ErrorKind.randomness_not_ready,
        ErrorKind.seed_not_ready,
        ErrorKind.timelock_not_elapsed,
        ErrorKind.transfer_failed,
    }
)

HTTP_STATUS = {
    ErrorKind.insufficient_payment: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.zero_wager: status.HTTP_400_BAD_REQUEST,
    ErrorKind.duplicate_id: status.HTTP_409_CONFLICT,
    ErrorKind.game_not_found: status.HTTP_404_NOT_FOUND,
    ErrorKind.game_finished: status.HTTP_409_CONFLICT,
    ErrorKind.randomness_not_ready: status.HTTP_425_TOO_EARLY,
    ErrorKind.already_fulfilled: status.HTTP_409_CONFLICT,
    ErrorKind.commit_mismatch: status.HTTP_400_BAD_REQUEST,
    ErrorKind.already_revealed: status.HTTP_409_CONFLICT,
    ErrorKind.seed_not_ready: status.HTTP_425_TOO_EARLY,
    ErrorKind.invalid_coordinate: status.HTTP_400_BAD_REQUEST,
    ErrorKind.cell_already_revealed: status.HTTP_409_CONFLICT,
    ErrorKind.already_lost: status.HTTP_409_CONFLICT,
    ErrorKind.unauthorized: status.HTTP_403_FORBIDDEN,
    ErrorKind.not_your_delegate: status.HTTP_403_FORBIDDEN,
    ErrorKind.self_delegation: status.HTTP_400_BAD_REQUEST,
    ErrorKind.zero_delegate: status.HTTP_400_BAD_REQUEST,
    ErrorKind.transfer_failed: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.no_pending_change: status.HTTP_404_NOT_FOUND,
    ErrorKind.timelock_not_elapsed: status.HTTP_425_TOO_EARLY,
    ErrorKind.out_of_range: status.HTTP_400_BAD_REQUEST,
}


class GameError(Exception):
    """Raised by every rejected operation. The surrounding transaction is rolled back."""

    def __init__(self, kind: ErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail or kind.value
        super().__init__(f"{kind.value}: {self.detail}")

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "detail": self.detail, "retryable": self.retryable}
