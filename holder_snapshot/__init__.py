"""Point-in-time ERC-721 holder snapshots straight from a JSON-RPC node."""
from .config import SnapshotConfig
from .errors import (
    EmptyCollectionError,
    ExhaustedStrategiesError,
    NoTokensFoundError,
    OversizedQueryError,
    PermanentCallFailure,
    SnapshotError,
    StrategyFailed,
    TransientRemoteError,
)
from .orchestrator import SnapshotResult, snapshot_contract, take_snapshot
from .registry import HolderData, HolderRegistry

__all__ = [
    "EmptyCollectionError",
    "ExhaustedStrategiesError",
    "HolderData",
    "HolderRegistry",
    "NoTokensFoundError",
    "OversizedQueryError",
    "PermanentCallFailure",
    "SnapshotConfig",
    "SnapshotError",
    "SnapshotResult",
    "StrategyFailed",
    "TransientRemoteError",
    "snapshot_contract",
    "take_snapshot",
]
