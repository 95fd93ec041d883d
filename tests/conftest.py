import asyncio
from collections import Counter

import pytest
from web3 import Web3

from holder_snapshot.config import SnapshotConfig
from holder_snapshot.contract import TransferEvent
from holder_snapshot.errors import OversizedQueryError, PermanentCallFailure, TransientRemoteError
from holder_snapshot.retry import RequestExecutor


def addr(n):
    return Web3.to_checksum_address("0x" + f"{n:040x}")


ZERO = "0x0000000000000000000000000000000000000000"


class FakeCollection:
    """In-memory stand-in for CollectionContract."""

    def __init__(
        self,
        owners=None,
        enumerable=True,
        total_supply=None,
        name="Fake Apes",
        symbol="FAPE",
        events=(),
        head=0,
        deployed_at=0,
        max_events_per_query=None,
        failing_ranges=(),
        flaky=None,
        broken_indices=(),
        yield_calls=False,
    ):
        self.owners = dict(owners or {})
        self.index = list(self.owners)
        self.enumerable = enumerable
        self._total_supply = len(self.owners) if total_supply is None else total_supply
        self._name = name
        self._symbol = symbol
        self.events = list(events)
        self.head = head
        self.deployed_at = deployed_at
        self.max_events_per_query = max_events_per_query
        self.failing_ranges = set(failing_ranges)
        self.flaky = Counter(flaky or {})
        self.broken_indices = set(broken_indices)
        self.yield_calls = yield_calls

        self.calls = Counter()
        self.owner_queries = []
        self.log_queries = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _enter(self, method):
        self.calls[method] += 1
        if self.flaky[method] > 0:
            self.flaky[method] -= 1
            raise TransientRemoteError(f"{method}: 429 Too Many Requests")
        if self.yield_calls:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            self.in_flight -= 1

    async def name(self):
        await self._enter("name")
        if self._name is None:
            raise PermanentCallFailure("name() reverted")
        return self._name

    async def symbol(self):
        await self._enter("symbol")
        if self._symbol is None:
            raise PermanentCallFailure("symbol() reverted")
        return self._symbol

    async def total_supply(self):
        await self._enter("total_supply")
        if not self.enumerable:
            raise PermanentCallFailure("totalSupply() reverted")
        return self._total_supply

    async def token_by_index(self, index):
        await self._enter("token_by_index")
        if not self.enumerable or index >= len(self.index) or index in self.broken_indices:
            raise PermanentCallFailure(f"tokenByIndex({index}) reverted")
        return self.index[index]

    async def owner_of(self, token_id):
        await self._enter("owner_of")
        self.owner_queries.append(int(token_id))
        if int(token_id) not in self.owners:
            raise PermanentCallFailure(f"ownerOf({token_id}) reverted")
        return self.owners[int(token_id)]

    async def block_number(self):
        await self._enter("block_number")
        return self.head

    async def code_at(self, block):
        await self._enter("code_at")
        return b"\x60\x80" if block >= self.deployed_at else b""

    async def transfer_events(self, from_block, to_block):
        await self._enter("transfer_events")
        self.log_queries.append((from_block, to_block))
        if (from_block, to_block) in self.failing_ranges:
            raise TransientRemoteError(f"eth_getLogs {from_block}-{to_block}: 503")
        found = [ev for ev in self.events if from_block <= ev.block_number <= to_block]
        if self.max_events_per_query is not None and len(found) > self.max_events_per_query:
            raise OversizedQueryError(from_block, to_block)
        return found


def transfer(block, sender, recipient, token_id, log_index=0):
    return TransferEvent(
        block_number=block,
        log_index=log_index,
        sender=sender,
        recipient=recipient,
        token_id=token_id,
    )


@pytest.fixture
def config():
    return SnapshotConfig(initial_backoff=0)


@pytest.fixture
def call():
    return RequestExecutor(max_retries=3, initial_delay=0)


@pytest.fixture
def progress():
    reports = []

    def report(percent, message):
        reports.append((percent, message))

    report.reports = reports
    return report
