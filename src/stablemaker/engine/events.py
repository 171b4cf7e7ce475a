"""Domain events emitted by committed transactions."""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional

EVENT_MINT_BY_SWAP = "mint_by_swap"
EVENT_BURN_BY_SWAP = "burn_by_swap"
EVENT_BUY_BACKING = "buy_backing"
EVENT_SELL_BACKING = "sell_backing"
EVENT_MINT_BY_COLLATERAL = "mint_by_collateral"
EVENT_BURN_BY_COLLATERAL = "burn_by_collateral"
EVENT_DEPOSIT_COLLATERAL = "deposit_collateral"
EVENT_REDEEM_COLLATERAL = "redeem_collateral"
EVENT_LIQUIDATE_COLLATERAL = "liquidate_collateral"


@dataclass
class Event:
    block_height: int
    event_type: str
    sender: Optional[str] = None
    coin_in: str = ""
    coin_out: str = ""
    fee: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)


class EventLog:
    def __init__(self, maxlen: Optional[int] = None) -> None:
        self.events = deque(maxlen=maxlen)

    def add(self, e: Event) -> None:
        self.events.append(e)

    def extend(self, events: List[Event]) -> None:
        self.events.extend(events)

    def tail(self, n: int = 200) -> List[Event]:
        if n <= 0:
            return []
        if n >= len(self.events):
            return list(self.events)
        return list(self.events)[-n:]

    def of_type(self, event_type: str) -> List[Event]:
        return [e for e in self.events if e.event_type == event_type]

    def __len__(self) -> int:
        return len(self.events)
