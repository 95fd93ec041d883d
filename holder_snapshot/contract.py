import asyncio
import json
import re
from dataclasses import dataclass

from aiohttp import ClientError, ClientResponseError, ClientTimeout
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3RPCError

from .errors import OversizedQueryError, PermanentCallFailure, TransientRemoteError
from .registry import normalize_address



def _view(name, inputs, output):
    return {
        "constant": True,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "name": name,
        "outputs": [{"name": "", "type": output}],
        "stateMutability": "view",
        "type": "function",
    }


ERC721_ABI = [
    _view("name", [], "string"),
    _view("symbol", [], "string"),
    _view("balanceOf", [("_owner", "address")], "uint256"),
    _view("ownerOf", [("_tokenId", "uint256")], "address"),
    _view("tokenURI", [("_tokenId", "uint256")], "string"),
    # Enumerable extension, often missing
    _view("totalSupply", [], "uint256"),
    _view("tokenByIndex", [("_index", "uint256")], "uint256"),
    _view("tokenOfOwnerByIndex", [("_owner", "address"), ("_index", "uint256")], "uint256"),
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "from", "type": "address"},
            {"indexed": True, "name": "to", "type": "address"},
            {"indexed": True, "name": "tokenId", "type": "uint256"},
        ],
        "name": "Transfer",
        "type": "event",
    },
]

# Messages nodes use when a getLogs response would be too big.
OVERSIZED_PATTERNS = re.compile(
    r"more than \d+ results"
    r"|response size"
    r"|too large"
    r"|block range",
    re.IGNORECASE,
)
# Throttling replies; these get backoff, not bisection.
RATE_LIMIT_PATTERNS = re.compile(r"\brate\b|too many|capacity|request count|compute units", re.IGNORECASE)


def is_oversized_error(exc):
    if isinstance(exc, json.JSONDecodeError):
        return True
    if isinstance(exc, ClientResponseError) and exc.status == 413:
        return True
    message = str(exc)
    if RATE_LIMIT_PATTERNS.search(message):
        return False
    return bool(OVERSIZED_PATTERNS.search(message))


@dataclass(frozen=True)
class TransferEvent:
    block_number: int
    log_index: int
    sender: str
    recipient: str
    token_id: int

    @property
    def sort_key(self):
        return (self.block_number, self.log_index)


class CollectionContract:
    """
    Read-only ERC-721 binding over an ``AsyncWeb3`` contract.

    Reverts come out as ``PermanentCallFailure``, transport trouble as
    ``TransientRemoteError``. Returned addresses are checksummed.
    """

    def __init__(self, w3, address):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self._contract = w3.eth.contract(address=self.address, abi=ERC721_ABI)

    @classmethod
    def connect(cls, rpc_url, address, timeout=30.0):
        provider = AsyncHTTPProvider(
            rpc_url,
            request_kwargs={"timeout": ClientTimeout(total=timeout)},
            # RequestExecutor owns retries
            exception_retry_configuration=None,
        )
        return cls(AsyncWeb3(provider), address)

    async def is_connected(self):
        return await self.w3.is_connected()

    async def _call(self, fn_name, *args):
        fn = getattr(self._contract.functions, fn_name)
        try:
            return await fn(*args).call()
        except ContractLogicError as e:
            raise PermanentCallFailure(f"{fn_name}({', '.join(map(str, args))}) reverted: {e}") from e
        # Some throttled nodes answer with an empty 0x instead of an error.
        except (BadFunctionCallOutput, ClientError, asyncio.TimeoutError, Web3RPCError) as e:
            raise TransientRemoteError(f"{fn_name}({', '.join(map(str, args))}) failed: {e}") from e

    async def name(self):
        return await self._call("name")

    async def symbol(self):
        return await self._call("symbol")

    async def total_supply(self):
        return int(await self._call("totalSupply"))

    async def token_by_index(self, index):
        return int(await self._call("tokenByIndex", index))

    async def owner_of(self, token_id):
        return normalize_address(await self._call("ownerOf", int(token_id)))

    async def block_number(self):
        try:
            return int(await self.w3.eth.block_number)
        except (ClientError, asyncio.TimeoutError, Web3RPCError) as e:
            raise TransientRemoteError(f"eth_blockNumber failed: {e}") from e

    async def code_at(self, block):
        try:
            return bytes(await self.w3.eth.get_code(self.address, block_identifier=block))
        except (ClientError, asyncio.TimeoutError, Web3RPCError) as e:
            raise TransientRemoteError(f"eth_getCode at block {block} failed: {e}") from e

    async def transfer_events(self, from_block, to_block):
        try:
            logs = await self._contract.events.Transfer().get_logs(
                from_block=from_block, to_block=to_block
            )
        except Exception as e:
            if is_oversized_error(e):
                raise OversizedQueryError(from_block, to_block, str(e)) from e
            if isinstance(e, (ClientError, asyncio.TimeoutError, Web3RPCError)):
                raise TransientRemoteError(
                    f"eth_getLogs {from_block}-{to_block} failed: {e}"
                ) from e
            raise
        return [
            TransferEvent(
                block_number=log["blockNumber"],
                log_index=log["logIndex"],
                sender=normalize_address(log["args"]["from"]),
                recipient=normalize_address(log["args"]["to"]),
                token_id=int(log["args"]["tokenId"]),
            )
            for log in logs
        ]
