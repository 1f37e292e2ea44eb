import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from sketchparty.errors import SendFailure
from sketchparty.models import Connection, Message
from .registry import RoomRegistry

logger = logging.getLogger(__name__)


@dataclass
class Delivery:
    delivered: int = 0
    evicted: List[Connection] = field(default_factory=list)
    # an evicted connection was the drawer (or the room fell below the threshold)
    round_ended: bool = False

    def merge(self, other: 'Delivery') -> 'Delivery':
        self.delivered += other.delivered
        self.evicted.extend(other.evicted)
        self.round_ended = self.round_ended or other.round_ended
        return self


class BroadcastDispatcher:
    """Fans messages out to a room's connections.

    Targets are snapshotted under the registry lock and written to after it
    is released. A failed send evicts and closes that one connection; the
    rest of the fan-out carries on.
    """

    def __init__(self, registry: RoomRegistry):
        self.registry = registry

    def broadcast_all(self, code: str, message: Message) -> Delivery:
        return self._send_many(code, [(c, message) for c in self.registry.connections(code)])

    def broadcast_except(self, code: str, message: Message, excluded: Connection) -> Delivery:
        targets = [c for c in self.registry.connections(code) if c != excluded]
        return self._send_many(code, [(c, message) for c in targets])

    def unicast(self, connection: Connection, message: Message, code: Optional[str] = None) -> Delivery:
        return self._send_many(code, [(connection, message)])

    def deliver(self, code: str, notifications: Iterable[Tuple[Connection, Message]]) -> Delivery:
        """Send a per-recipient notification set, e.g. Round.notifications()."""
        return self._send_many(code, notifications)

    def _send_many(self, code: Optional[str], pending: Iterable[Tuple[Connection, Message]]) -> Delivery:
        delivery = Delivery()
        for connection, message in pending:
            if connection in delivery.evicted:
                continue
            try:
                connection.send(message)
            except SendFailure as exc:
                logger.warning(f"[send-failed] code={code} type={message.type} error={exc}")
                delivery.merge(self.evict(code, connection))
            else:
                delivery.delivered += 1
        return delivery

    def evict(self, code: Optional[str], connection: Connection) -> Delivery:
        code = code or self.registry.room_of(connection)
        round_ended = False
        if code is not None:
            round_ended = self.registry.remove_connection(code, connection)
        connection.close()
        logger.info(f"[evict] code={code} round_ended={round_ended}")
        return Delivery(evicted=[connection], round_ended=round_ended)
