"""Room session core: registry, turn rotation, fan-out and per-connection sessions.

Pure(ish) domain logic with no Flask or Socket.IO imports; the transport
hands each connection to a SessionHandler through the Connection protocol.
"""

from dataclasses import dataclass

from .broadcast import BroadcastDispatcher, Delivery
from .registry import RoomRegistry
from .session import SessionHandler
from .turns import GuessOutcome, Round, TurnEngine
from .words import WordList


@dataclass
class GameServices:
    """The session core as built once per app and shared by every connection."""
    registry: RoomRegistry
    engine: TurnEngine
    dispatcher: BroadcastDispatcher
    default_nickname: str = 'Anonymous'

    @classmethod
    def from_config(cls, config) -> 'GameServices':
        min_players = int(config.get('MIN_PLAYERS', 2))
        default_nickname = config.get('DEFAULT_NICKNAME', 'Anonymous')
        registry = RoomRegistry(
            code_length=int(config.get('ROOM_CODE_LENGTH', 4)),
            alphabet=config.get('ROOM_CODE_ALPHABET', '0123456789'),
            max_attempts=int(config.get('ROOM_CODE_MAX_ATTEMPTS', 100)),
            min_players=min_players,
            default_nickname=default_nickname,
            prune_empty=bool(config.get('PRUNE_EMPTY_ROOMS', False)),
        )
        engine = TurnEngine(WordList(config.get('WORDS') or []), min_players=min_players)
        return cls(registry, engine, BroadcastDispatcher(registry), default_nickname)

    def open_session(self, connection) -> SessionHandler:
        return SessionHandler(connection, self.registry, self.engine, self.dispatcher, self.default_nickname)


__all__ = [
    'BroadcastDispatcher',
    'Delivery',
    'GameServices',
    'GuessOutcome',
    'RoomRegistry',
    'Round',
    'SessionHandler',
    'TurnEngine',
    'WordList',
]
