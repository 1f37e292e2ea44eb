import logging
import threading
from typing import Callable, Dict, Optional

from sketchparty.errors import RoomCodesExhausted, RoomNotFound
from sketchparty.models import Connection, Message, MessageType
from .broadcast import BroadcastDispatcher, Delivery
from .registry import RoomRegistry
from .turns import Round, TurnEngine

logger = logging.getLogger(__name__)

YOU_WON_TEXT = "You scored a point, it's your turn to draw!"


class SessionHandler:
    """Per-connection control loop.

    The transport feeds every inbound message to ``handle`` and calls
    ``close`` once the channel is gone. The handler keeps its own view of
    the connection's nickname and room; the registry stays the source of
    truth for membership.
    """

    def __init__(
        self,
        connection: Connection,
        registry: RoomRegistry,
        engine: TurnEngine,
        dispatcher: BroadcastDispatcher,
        default_nickname: str = 'Anonymous',
    ) -> None:
        self.connection = connection
        self.registry = registry
        self.engine = engine
        self.dispatcher = dispatcher
        self.nickname = default_nickname
        self.room_code: Optional[str] = None
        self.closed = False
        # serializes this connection's own events; close() stays lock-free
        # because eviction may call it from another session's send path
        self._lock = threading.Lock()
        self._routes: Dict[str, Callable[[Message], None]] = {
            MessageType.NICKNAME: self.on_nickname,
            MessageType.CREATE_ROOM: self.on_create_room,
            MessageType.JOIN_ROOM: self.on_join_room,
            MessageType.MESSAGE: self.on_chat,
            MessageType.DRAW: self.on_draw,
            MessageType.GUESS: self.on_guess,
        }

    def handle(self, message: Message) -> None:
        with self._lock:
            if self.closed:
                return
            route = self._routes.get(message.type)
            if route is None:
                self._reply(Message.error(f"Unknown message type: {message.type}"))
                return
            route(message)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._leave_room()

    # ---------- inbound events ---------- #

    def on_nickname(self, message: Message) -> None:
        name = (message.nickname or '').strip()
        if not name:
            self._reply(Message.error('nickname is required'))
            return
        self.nickname = name
        self.registry.set_nickname(self.connection, name)

    def on_create_room(self, message: Message) -> None:
        try:
            code = self.registry.create_room()
        except RoomCodesExhausted as exc:
            logger.error(f"[room-create-failed] error={exc}")
            self._reply(Message.error('Could not create a room, try again later'))
            return
        self._leave_room()
        # the creator is the first participant
        self.registry.join_room(code, self.connection, self.nickname)
        self.room_code = code
        self._reply(Message(type=MessageType.ROOM_CREATED, room_code=code))

    def on_join_room(self, message: Message) -> None:
        code = (message.room_code or '').strip()
        if not code or code not in self.registry:
            self._reply(Message.error('Room not found'))
            return
        if code != self.room_code:
            self._leave_room()
        try:
            ready = self.registry.join_room(code, self.connection, self.nickname)
        except RoomNotFound:
            # pruned between the check and the join
            self._reply(Message.error('Room not found'))
            return
        self.room_code = code
        self._reply(Message(type=MessageType.ROOM_JOINED, room_code=code))
        if ready:
            self._announce(code, self._with_room(code, self.engine.start_if_idle))

    def on_chat(self, message: Message) -> None:
        code = self._require_room()
        if code is None or message.message is None:
            return
        self._settle(code, self.dispatcher.broadcast_all(
            code, Message(type=MessageType.MESSAGE, nickname=self.nickname, message=message.message)))

    def on_draw(self, message: Message) -> None:
        code = self._require_room()
        if code is None:
            return
        if not self._with_room(code, lambda room: room.current_drawer == self.connection):
            return
        stroke = Message(
            type=MessageType.DRAW,
            x=message.x,
            y=message.y,
            prev_x=message.prev_x,
            prev_y=message.prev_y,
        )
        self._settle(code, self.dispatcher.broadcast_except(code, stroke, self.connection))

    def on_guess(self, message: Message) -> None:
        code = self._require_room()
        text = message.message
        if code is None or text is None:
            return
        outcome = self._with_room(code, lambda room: self.engine.resolve_guess(room, self.connection, text))
        if outcome is None or outcome.suppressed:
            return
        name = outcome.guesser_name or self.nickname
        if not outcome.correct:
            self._settle(code, self.dispatcher.broadcast_all(
                code, Message(type=MessageType.MESSAGE, nickname=name, message=text)))
            return

        delivery = self.dispatcher.broadcast_all(
            code, Message(type=MessageType.GUESS_CORRECT, message=f"{name} guessed the word!"))
        delivery.merge(self.dispatcher.unicast(
            self.connection, Message(type=MessageType.YOU_WON, message=YOU_WON_TEXT), code))
        delivery.merge(self.dispatcher.broadcast_all(code, Message(type=MessageType.CLEAR_CANVAS)))
        if outcome.next_round is not None:
            delivery.merge(self.dispatcher.deliver(code, outcome.next_round.notifications()))
        self._settle(code, delivery)

    # ---------- helpers ---------- #

    def _with_room(self, code, fn):
        try:
            return self.registry.with_room(code, fn)
        except RoomNotFound:
            return None

    def _require_room(self) -> Optional[str]:
        code = self.room_code
        if code is not None and self.registry.is_member(code, self.connection):
            return code
        self.room_code = None
        self._reply(Message.error('Not in a room'))
        return None

    def _reply(self, message: Message) -> None:
        self._settle(self.room_code, self.dispatcher.unicast(self.connection, message, self.room_code))

    def _announce(self, code: str, new_round: Optional[Round]) -> None:
        if new_round is not None:
            self._settle(code, self.dispatcher.deliver(code, new_round.notifications()))

    def _settle(self, code: Optional[str], delivery: Delivery) -> None:
        if code is not None and delivery.round_ended:
            self._resume_after_departure(code)

    def _leave_room(self) -> None:
        code, self.room_code = self.room_code, None
        if code is None:
            return
        if self.registry.remove_connection(code, self.connection):
            self._resume_after_departure(code)

    def _resume_after_departure(self, code: str) -> None:
        """The round ended because a player left: wipe the canvas and start over if possible."""
        while True:
            delivery = self.dispatcher.broadcast_all(code, Message(type=MessageType.CLEAR_CANVAS))
            new_round = self._with_room(code, self.engine.start_if_idle)
            if new_round is not None:
                delivery.merge(self.dispatcher.deliver(code, new_round.notifications()))
            if not delivery.round_ended:
                return
