import asyncio
import logging

from ..errors import NoTokensFoundError
from ..limiter import ConcurrencyLimiter
from ..progress import log_progress
from ..registry import HolderRegistry
from .enumeration import index_batches

logger = logging.getLogger(__name__)


async def holders_by_token_range(collection, config, call, report=log_progress):
    """
    Ask ``ownerOf`` for every ID in ``[0, range_max_tokens)``, batch by batch.

    A failed lookup means the ID does not exist. Once past batch
    ``sparse_stop_after_batch``, a batch whose hit rate drops below
    ``sparse_stop_ratio`` is taken as the end of the collection and no
    further batches are requested.
    """
    registry = HolderRegistry()
    limiter = ConcurrencyLimiter(config.range_concurrency)
    batches = index_batches(config.range_max_tokens, config.range_batch_size)
    report(0, "Querying token owners by ID range...")

    async def lookup(token_id):
        try:
            owner = await call(lambda: collection.owner_of(token_id))
        except Exception as e:
            logger.debug(f"Token {token_id} does not exist: {e}")
            return False
        registry.add(owner, token_id)
        return True

    found_tokens = 0
    for batch_index, batch in enumerate(batches):
        found = await asyncio.gather(*(limiter.run(lookup, token_id) for token_id in batch))
        newly_found = found.count(True)
        found_tokens += newly_found
        report(
            (batch_index + 1) * 100 // len(batches),
            f"Processed {batch[-1] + 1} IDs, found {found_tokens} tokens so far...",
        )
        if batch_index > config.sparse_stop_after_batch and newly_found < len(batch) * config.sparse_stop_ratio:
            report(100, f"Low token density detected. Stopping scan at ID {batch[-1]}")
            break

    if found_tokens == 0:
        raise NoTokensFoundError("No tokens found in the ID range")

    report(100, f"Found {found_tokens} tokens across {len(registry)} holders")
    return registry
