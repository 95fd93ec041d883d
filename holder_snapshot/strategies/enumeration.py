import asyncio
import logging

from ..errors import EmptyCollectionError
from ..limiter import ConcurrencyLimiter
from ..progress import log_progress
from ..registry import HolderRegistry

logger = logging.getLogger(__name__)


def index_batches(total, batch_size):
    return [range(start, min(start + batch_size, total)) for start in range(0, total, batch_size)]


async def holders_by_enumeration(collection, config, call, report=log_progress, total_supply=None):
    """
    Walk ``tokenByIndex`` over ``[0, totalSupply)`` in sequential batches,
    resolving each token's owner with bounded concurrency.

    A token that still fails after retries is skipped; the batch carries on.
    Returns whatever was collected, possibly an empty registry.
    """
    if total_supply is None:
        total_supply = await call(collection.total_supply)
    if total_supply <= 0:
        raise EmptyCollectionError()

    registry = HolderRegistry()
    limiter = ConcurrencyLimiter(config.enumeration_concurrency)
    batches = index_batches(total_supply, config.enumeration_batch_size)
    report(0, f"Optimized fetching for {total_supply} tokens...")

    async def lookup(index):
        try:
            token_id = await call(lambda: collection.token_by_index(index))
            owner = await call(lambda: collection.owner_of(token_id))
        except Exception as e:
            logger.debug(f"No token resolved at index {index}: {e}")
            return False
        registry.add(owner, token_id)
        return True

    processed = 0
    missed = 0
    for batch_index, batch in enumerate(batches):
        report(processed * 100 // total_supply, f"Processing batch {batch_index + 1}/{len(batches)}...")
        found = await asyncio.gather(*(limiter.run(lookup, index) for index in batch))
        missed += found.count(False)
        processed += len(batch)
        report(processed * 100 // total_supply, f"Processed {processed}/{total_supply} tokens")

    if missed:
        logger.warning(f"Enumeration skipped {missed} of {total_supply} indices after retries")
    return registry
