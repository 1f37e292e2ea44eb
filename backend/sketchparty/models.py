from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from sketchparty.errors import MalformedMessage


class MessageType:
    # inbound
    NICKNAME = 'nickname'
    CREATE_ROOM = 'createRoom'
    JOIN_ROOM = 'joinRoom'
    MESSAGE = 'message'
    DRAW = 'draw'
    GUESS = 'guess'
    # outbound
    ROOM_CREATED = 'roomCreated'
    ROOM_JOINED = 'roomJoined'
    ERROR = 'error'
    GUESS_CORRECT = 'guessCorrect'
    YOU_WON = 'youWon'
    CLEAR_CANVAS = 'clearCanvas'
    YOUR_WORD = 'yourWord'
    START_GUESSING = 'startGuessing'

    INBOUND = (NICKNAME, CREATE_ROOM, JOIN_ROOM, MESSAGE, DRAW, GUESS)


# attribute name -> wire key
_WIRE_KEYS = {
    'message': 'message',
    'nickname': 'nickname',
    'room_code': 'roomCode',
    'x': 'x',
    'y': 'y',
    'prev_x': 'prevX',
    'prev_y': 'prevY',
}
_TEXT_FIELDS = ('message', 'nickname', 'room_code')
_COORD_FIELDS = ('x', 'y', 'prev_x', 'prev_y')


@dataclass
class Message:
    """Tagged message exchanged with clients, in either direction."""
    type: str
    message: Optional[str] = None
    nickname: Optional[str] = None
    room_code: Optional[str] = None
    x: Optional[int] = None
    y: Optional[int] = None
    prev_x: Optional[int] = None
    prev_y: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'type': self.type}
        for attr, key in _WIRE_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_event(cls, tag: str, data: Any) -> 'Message':
        """Build a message from a Socket.IO event name and its payload.

        The event name is the type tag; a ``type`` key inside the payload,
        if any, is ignored. Raises MalformedMessage for a payload that is
        not an object or carries fields of the wrong type.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise MalformedMessage(f"{tag}: payload must be an object")
        values: Dict[str, Any] = {}
        for attr, key in _WIRE_KEYS.items():
            value = data.get(key)
            if value is None:
                continue
            if attr in _TEXT_FIELDS and not isinstance(value, str):
                raise MalformedMessage(f"{tag}: '{key}' must be a string")
            # bool is an int subclass but never a coordinate
            if attr in _COORD_FIELDS and (isinstance(value, bool) or not isinstance(value, int)):
                raise MalformedMessage(f"{tag}: '{key}' must be an integer")
            values[attr] = value
        return cls(type=tag, **values)

    @classmethod
    def error(cls, text: str) -> 'Message':
        return cls(type=MessageType.ERROR, message=text)


class Connection(Protocol):
    """One participant's duplex channel, as seen by the session core.

    ``send`` raises SendFailure when the peer is gone; ``close`` never raises.
    """

    def send(self, message: Message) -> None:
        ...

    def close(self) -> None:
        ...


@dataclass
class Room:
    code: str
    # insertion ordered: this is the turn rotation order
    participants: Dict[Connection, str] = field(default_factory=dict)
    current_drawer: Optional[Connection] = None
    secret_word: str = ''
    previous_drawer: Optional[Connection] = None

    @property
    def round_active(self) -> bool:
        return self.current_drawer is not None

    @property
    def members(self) -> List[Connection]:
        return list(self.participants)

    def __len__(self):
        return len(self.participants)

    def __contains__(self, connection):
        return connection in self.participants

    def add(self, connection: Connection, name: str) -> None:
        # updating an existing key keeps its position
        self.participants[connection] = name

    def end_round(self) -> None:
        if self.current_drawer is not None:
            self.previous_drawer = self.current_drawer
        self.current_drawer = None
        self.secret_word = ''

    def remove(self, connection: Connection, min_players: int = 2) -> bool:
        """Drop a participant; return True if that ended the active round."""
        if connection not in self.participants:
            return False
        del self.participants[connection]
        if not self.round_active:
            return False
        if connection == self.current_drawer or len(self.participants) < min_players:
            self.end_round()
            return True
        return False
