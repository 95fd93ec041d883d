from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping

from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def normalize_address(address: str) -> str:
    """EIP-55 checksum form, so one holder never shows up under two casings."""
    return Web3.to_checksum_address(address)


@dataclass
class HolderData:
    address: str
    token_ids: List[str] = field(default_factory=list)

    @property
    def token_count(self) -> int:
        return len(self.token_ids)

    def as_dict(self) -> dict:
        return {
            "address": self.address,
            "tokenCount": self.token_count,
            "tokenIds": list(self.token_ids),
        }


class HolderRegistry:
    """
    address -> HolderData, built up one (token, owner) pair at a time.

    Ownership is exclusive: adding a token that is already recorded under
    another holder moves it, and a holder left with no tokens is dropped.
    Holders iterate in the order they were first seen; token IDs keep
    discovery order.
    """

    def __init__(self):
        self._holders: Dict[str, HolderData] = {}
        self._owner_of: Dict[str, str] = {}

    @classmethod
    def from_token_owners(cls, token_owners: Mapping[str, str], skip=(ZERO_ADDRESS,)) -> "HolderRegistry":
        skipped = {normalize_address(a) for a in skip}
        registry = cls()
        for token_id, owner in token_owners.items():
            if normalize_address(owner) in skipped:
                continue
            registry.add(owner, token_id)
        return registry

    def add(self, owner: str, token_id) -> None:
        # No awaits in here: under asyncio the whole upsert runs without interleaving.
        owner = normalize_address(owner)
        token_id = str(token_id)
        previous = self._owner_of.get(token_id)
        if previous == owner:
            return
        if previous is not None:
            self._discard(previous, token_id)
        holder = self._holders.get(owner)
        if holder is None:
            holder = self._holders[owner] = HolderData(address=owner)
        holder.token_ids.append(token_id)
        self._owner_of[token_id] = owner

    def _discard(self, owner: str, token_id: str) -> None:
        holder = self._holders[owner]
        holder.token_ids.remove(token_id)
        if not holder.token_ids:
            del self._holders[owner]

    def owner_of(self, token_id):
        return self._owner_of.get(str(token_id))

    def get(self, address):
        return self._holders.get(normalize_address(address))

    @property
    def total_tokens(self) -> int:
        return len(self._owner_of)

    def __len__(self) -> int:
        return len(self._holders)

    def __iter__(self) -> Iterator[HolderData]:
        return iter(list(self._holders.values()))

    def __contains__(self, address) -> bool:
        try:
            return normalize_address(address) in self._holders
        except (TypeError, ValueError):
            return False

    def __bool__(self) -> bool:
        return bool(self._holders)

    def __repr__(self) -> str:
        return f"HolderRegistry(holders={len(self)}, tokens={self.total_tokens})"
