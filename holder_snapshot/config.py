import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

# ─── DEFAULTS ───────────────────────────────────────────────────
DEFAULT_RPC_URL = "https://rpc.hyperliquid.xyz/evm"
# ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SnapshotConfig:
    """Tuning knobs for a snapshot run.

    Times are in seconds. ``lookback_blocks <= 0`` scans Transfer events
    from the contract's deployment block instead of a fixed window.
    """

    rpc_url: str = DEFAULT_RPC_URL
    request_timeout: float = 30.0
    max_retries: int = 3
    initial_backoff: float = 1.0

    enumeration_batch_size: int = 50
    enumeration_concurrency: int = 10

    range_batch_size: int = 200
    range_concurrency: int = 20
    range_max_tokens: int = 10_000
    sparse_stop_ratio: float = 0.01
    sparse_stop_after_batch: int = 3

    event_chunk_blocks: int = 5_000
    event_concurrency: int = 3
    event_lookback_blocks: int = 50_000
    min_bisect_blocks: int = 1

    def __post_init__(self):
        positive = (
            "request_timeout",
            "max_retries",
            "enumeration_batch_size",
            "enumeration_concurrency",
            "range_batch_size",
            "range_concurrency",
            "event_chunk_blocks",
            "event_concurrency",
            "min_bisect_blocks",
        )
        for field in positive:
            if getattr(self, field) <= 0:
                raise ValueError(f"{field} must be positive, got {getattr(self, field)!r}")
        if self.initial_backoff < 0:
            raise ValueError(f"initial_backoff must not be negative, got {self.initial_backoff!r}")
        if self.range_max_tokens < 0:
            raise ValueError(f"range_max_tokens must not be negative, got {self.range_max_tokens!r}")
        if not 0 <= self.sparse_stop_ratio <= 1:
            raise ValueError(f"sparse_stop_ratio must be within [0, 1], got {self.sparse_stop_ratio!r}")

    def with_overrides(self, **changes):
        """Copy with the given fields replaced; ``None`` values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(cls, environ=None):
        """Build a config from environment variables (and a ``.env`` file)."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        def read(name, cast, default):
            raw = environ.get(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return cast(raw.strip())
            except ValueError:
                raise ValueError(f"invalid value for {name}: {raw!r}") from None

        base = cls()
        return cls(
            rpc_url=read("RPC_URL", str, base.rpc_url),
            request_timeout=read("REQUEST_TIMEOUT", float, base.request_timeout),
            max_retries=read("MAX_RETRIES", int, base.max_retries),
            initial_backoff=read("INITIAL_BACKOFF_MS", float, base.initial_backoff * 1000) / 1000,
            enumeration_batch_size=read("ENUMERATION_BATCH_SIZE", int, base.enumeration_batch_size),
            enumeration_concurrency=read("ENUMERATION_CONCURRENCY", int, base.enumeration_concurrency),
            range_batch_size=read("RANGE_BATCH_SIZE", int, base.range_batch_size),
            range_concurrency=read("RANGE_CONCURRENCY", int, base.range_concurrency),
            range_max_tokens=read("RANGE_MAX_TOKENS", int, base.range_max_tokens),
            sparse_stop_ratio=read("SPARSE_STOP_RATIO", float, base.sparse_stop_ratio),
            sparse_stop_after_batch=read("SPARSE_STOP_AFTER_BATCH", int, base.sparse_stop_after_batch),
            event_chunk_blocks=read("EVENT_CHUNK_BLOCKS", int, base.event_chunk_blocks),
            event_concurrency=read("EVENT_CONCURRENCY", int, base.event_concurrency),
            event_lookback_blocks=read("EVENT_LOOKBACK_BLOCKS", int, base.event_lookback_blocks),
            min_bisect_blocks=read("MIN_BISECT_BLOCKS", int, base.min_bisect_blocks),
        )
