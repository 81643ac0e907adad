"""Escrow events.

One event is published per successful state transition, after the store has
committed it. ``EscrowWithdrawn`` carries the revealed secret: a watcher on the
counterpart chain uses it to unlock the other leg of the swap.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol, Union

from .config import TOPIC_ESCROW_CANCELLED, TOPIC_ESCROW_CREATED, TOPIC_ESCROW_WITHDRAWN
from .types import Address, EscrowId


@dataclass(frozen=True)
class EscrowCreated:
    escrow_id: EscrowId
    maker: Address
    taker: Address
    asset: Address
    amount: int

    topic = TOPIC_ESCROW_CREATED


@dataclass(frozen=True)
class EscrowWithdrawn:
    escrow_id: EscrowId
    taker: Address
    amount: int
    secret: bytes

    topic = TOPIC_ESCROW_WITHDRAWN


@dataclass(frozen=True)
class EscrowCancelled:
    escrow_id: EscrowId
    maker: Address
    amount: int

    topic = TOPIC_ESCROW_CANCELLED


EscrowEvent = Union[EscrowCreated, EscrowWithdrawn, EscrowCancelled]


class EventSink(Protocol):
    def publish(self, event: EscrowEvent) -> None:
        """Called after the transition has committed; implementations must not raise."""
        ...


class EventLog:
    """Append-only in-memory event stream."""

    def __init__(self) -> None:
        self._events: list[EscrowEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: EscrowEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> tuple[EscrowEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def of_type(self, kind: type) -> list[EscrowEvent]:
        return [e for e in self.events if isinstance(e, kind)]

    def __len__(self) -> int:
        return len(self._events)


class LoggingEventSink:
    """Writes every event to a logger at INFO."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def publish(self, event: EscrowEvent) -> None:
        self.logger.info("%s %s", event.topic, event_to_json(event))


def event_to_json(event: EscrowEvent) -> dict[str, Any]:
    out: dict[str, Any] = {"topic": event.topic, "escrow_id": event.escrow_id.hex()}
    if isinstance(event, EscrowCreated):
        out.update(
            maker=event.maker.hex(),
            taker=event.taker.hex(),
            asset=event.asset.hex(),
            amount=event.amount,
        )
    elif isinstance(event, EscrowWithdrawn):
        out.update(taker=event.taker.hex(), amount=event.amount, secret=event.secret.hex())
    else:
        out.update(maker=event.maker.hex(), amount=event.amount)
    return out
