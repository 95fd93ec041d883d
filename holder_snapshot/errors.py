"""Exceptions raised while building a holder snapshot."""


class SnapshotError(Exception):
    pass


class TransientRemoteError(SnapshotError):
    """Transport-level failure (timeout, dropped connection, 5xx, rate limit)."""


class PermanentCallFailure(SnapshotError):
    """The contract call reverted. Retrying will not change the answer."""


class OversizedQueryError(SnapshotError):
    """The node refused a log query because the response would be too big."""

    def __init__(self, from_block, to_block, message=""):
        self.from_block = from_block
        self.to_block = to_block
        super().__init__(
            message or f"log query too large for blocks {from_block}-{to_block}"
        )


class StrategyFailed(SnapshotError):
    pass


class EmptyCollectionError(StrategyFailed):
    def __init__(self, message="No tokens found in this collection"):
        super().__init__(message)


class NoTokensFoundError(StrategyFailed):
    pass


class ExhaustedStrategiesError(SnapshotError):
    """Every strategy came back empty. The message is meant for the end user."""


# The request executor gives up on these immediately.
NON_RETRYABLE = (PermanentCallFailure, OversizedQueryError)
