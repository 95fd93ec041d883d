"""The three ways of turning a contract into (token, owner) pairs."""
from .enumeration import holders_by_enumeration
from .token_range import holders_by_token_range
from .transfer_events import holders_from_transfer_events

__all__ = [
    "holders_by_enumeration",
    "holders_by_token_range",
    "holders_from_transfer_events",
]
