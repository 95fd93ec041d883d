import logging
from dataclasses import dataclass, field
from typing import List

from .config import SnapshotConfig
from .contract import CollectionContract
from .errors import ExhaustedStrategiesError, SnapshotError
from .probe import supports_enumeration
from .progress import log_progress
from .registry import HolderRegistry
from .retry import RequestExecutor
from .strategies import (
    holders_by_enumeration,
    holders_by_token_range,
    holders_from_transfer_events,
)

logger = logging.getLogger(__name__)

ENUMERATION = "enumeration"
DIRECT_QUERIES = "direct queries"
TRANSFER_EVENTS = "transfer events"

EXHAUSTED_MESSAGE = (
    "Failed to retrieve token holders. This contract may not be a standard "
    "ERC721 or the RPC endpoint may be rate limiting requests."
)


@dataclass
class SnapshotResult:
    name: str
    symbol: str
    holders: HolderRegistry
    strategies: List[str] = field(default_factory=list)

    @property
    def total_holders(self):
        return len(self.holders)

    @property
    def total_tokens(self):
        return sum(h.token_count for h in self.holders)

    def as_dict(self):
        return {
            "name": self.name,
            "symbol": self.symbol,
            "holders": [h.as_dict() for h in self.holders],
            "totalHolders": self.total_holders,
            "totalTokens": self.total_tokens,
            "strategies": list(self.strategies),
        }


async def collection_info(collection, call):
    try:
        name = await call(collection.name)
        symbol = await call(collection.symbol)
    except Exception as e:
        logger.warning(f"Error getting collection info: {e}")
        return None
    return name, symbol


async def take_snapshot(collection, config=None, report=log_progress, call=None):
    """
    Current holders of ``collection``.

    Tries enumeration (when the probe says it is there), then direct
    ``ownerOf`` queries over an ID range, then Transfer logs. The first
    non-empty result wins; if none produces holders,
    ``ExhaustedStrategiesError`` is raised.
    """
    config = config or SnapshotConfig()
    call = call or RequestExecutor.from_config(config)

    info = await collection_info(collection, call)
    if info is None:
        report(0, "Unable to retrieve collection name/symbol. Continuing with fallback names...")
        name, symbol = "Unknown", "UNKNOWN"
    else:
        name, symbol = info
        report(0, f"Connected to collection: {name} ({symbol})")

    holders = HolderRegistry()
    attempted = []

    if await supports_enumeration(collection, call):
        report(0, "Contract supports enumeration. Using optimized fetching...")
        attempted.append(ENUMERATION)
        try:
            holders = await holders_by_enumeration(collection, config, call, report)
        except Exception as e:
            logger.info(f"Error using enumeration methods: {e}")
    else:
        report(0, "Contract does not support enumeration. Trying alternative methods...")

    if not holders:
        report(0, "Trying optimized direct token ID queries...")
        attempted.append(DIRECT_QUERIES)
        try:
            holders = await holders_by_token_range(collection, config, call, report)
        except Exception as e:
            logger.info(f"Error using direct token ID queries: {e}")

    if not holders:
        report(0, "Trying optimized transfer events method...")
        attempted.append(TRANSFER_EVENTS)
        try:
            holders = await holders_from_transfer_events(collection, config, call, report)
        except Exception as e:
            logger.error(f"Error using events method: {e}")
            raise ExhaustedStrategiesError(EXHAUSTED_MESSAGE) from e

    if not holders:
        raise ExhaustedStrategiesError("No holder data could be retrieved after trying multiple methods")

    result = SnapshotResult(name=name, symbol=symbol, holders=holders, strategies=attempted)
    report(
        100,
        f"Found {result.total_holders} unique holders and {result.total_tokens} tokens "
        f"using {', '.join(attempted)}",
    )
    return result


async def snapshot_contract(address, config=None, report=log_progress):
    """Connect to ``config.rpc_url`` and snapshot the collection at ``address``."""
    config = config or SnapshotConfig()
    collection = CollectionContract.connect(config.rpc_url, address, timeout=config.request_timeout)
    if not await collection.is_connected():
        raise SnapshotError(f"Could not connect to RPC at {config.rpc_url!r}")
    return await take_snapshot(collection, config, report)
