import asyncio
import logging
from dataclasses import dataclass

from ..errors import NoTokensFoundError, OversizedQueryError
from ..limiter import ConcurrencyLimiter
from ..progress import log_progress
from ..registry import HolderRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockRange:
    from_block: int
    to_block: int

    @property
    def size(self):
        return self.to_block - self.from_block + 1

    def halves(self):
        mid = (self.from_block + self.to_block) // 2
        return BlockRange(self.from_block, mid), BlockRange(mid + 1, self.to_block)

    def __str__(self):
        return f"{self.from_block}-{self.to_block}"


def block_chunks(start, end, chunk_size):
    """Split ``[start, end]`` (both inclusive) into ranges of ``chunk_size`` blocks."""
    return [
        BlockRange(lo, min(end, lo + chunk_size - 1))
        for lo in range(start, end + 1, chunk_size)
    ]


async def find_deployment_block(collection, call, high):
    """Binary search for the first block at which the contract has code."""
    lo, hi = 0, high
    logger.info("Auto-detecting deployment block via binary search...")
    while lo < hi:
        mid = (lo + hi) // 2
        code = await call(lambda: collection.code_at(mid))
        if not code:
            lo = mid + 1
        else:
            hi = mid
    logger.info(f"Found deployment at block {lo}")
    return lo


async def fetch_range(collection, call, block_range, min_blocks=1):
    """
    Transfer events for ``block_range``. When the node says the answer is
    too big, split the range in half and fetch each half in turn. A range
    already at ``min_blocks`` that is still too big is skipped, and a half
    that keeps failing for another reason is dropped without its sibling.
    """
    try:
        return await call(lambda: collection.transfer_events(block_range.from_block, block_range.to_block))
    except OversizedQueryError as e:
        if block_range.size <= min_blocks:
            logger.warning(f"Skipping blocks {block_range}: still too large at the bisection floor ({e})")
            return []
        first, second = block_range.halves()
        logger.info(f"Response too large for blocks {block_range}, trying {first} and {second}")
        events = []
        for half in (first, second):
            try:
                events += await fetch_range(collection, call, half, min_blocks)
            except Exception as half_error:
                logger.warning(f"Error on blocks {half}: {half_error}")
        return events


def apply_transfers(token_owner, events):
    """Last write wins: ``events`` must already be in (block, log index) order."""
    for event in events:
        token_owner[str(event.token_id)] = event.recipient
    return token_owner


async def holders_from_transfer_events(collection, config, call, report=log_progress):
    """
    Rebuild current ownership from recent ``Transfer`` logs.

    Only the last ``event_lookback_blocks`` blocks are scanned (or the whole
    history from deployment when that is ``<= 0``), so tokens that have not
    moved inside the window are missed. Chunks are fetched concurrently but
    applied strictly in block order.
    """
    report(0, "Using Transfer events to determine holders...")
    head = await call(collection.block_number)
    if config.event_lookback_blocks > 0:
        start = max(0, head - config.event_lookback_blocks)
    else:
        start = await find_deployment_block(collection, call, head)
    chunks = block_chunks(start, head, config.event_chunk_blocks)
    report(0, f"Scanning events from block {start} to {head}...")

    limiter = ConcurrencyLimiter(config.event_concurrency)
    done = 0

    async def fetch_chunk(index, chunk):
        nonlocal done
        try:
            events = await fetch_range(collection, call, chunk, config.min_bisect_blocks)
        except Exception as e:
            logger.warning(f"Error scanning blocks {chunk}: {e}")
            events = None
        done += 1
        report(done * 100 // len(chunks), f"Scanned chunk {index + 1}/{len(chunks)}: blocks {chunk}")
        return events

    results = await asyncio.gather(*(limiter.run(fetch_chunk, i, c) for i, c in enumerate(chunks)))

    token_owner = {}
    failed = 0
    for events in results:
        if events is None:
            failed += 1
            continue
        apply_transfers(token_owner, sorted(events, key=lambda ev: ev.sort_key))
    if failed:
        logger.warning(f"{failed} of {len(chunks)} block chunks could not be scanned")

    report(100, f"Found owner data for {len(token_owner)} tokens. Processing...")
    registry = HolderRegistry.from_token_owners(token_owner)
    if not registry:
        raise NoTokensFoundError("No holders found from transfer events")
    return registry
