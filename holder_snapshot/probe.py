import logging

logger = logging.getLogger(__name__)


async def supports_enumeration(collection, call):
    """
    Best-effort check for ERC721Enumerable: ``totalSupply()``,
    ``tokenByIndex(0)`` and ``ownerOf`` of that token must all answer.
    Any failure means "unsupported"; false negatives are accepted.
    """
    try:
        await call(collection.total_supply)
        first = await call(lambda: collection.token_by_index(0))
        await call(lambda: collection.owner_of(first))
    except Exception as e:
        logger.info(f"Contract does not support enumeration fully: {e}")
        return False
    return True
