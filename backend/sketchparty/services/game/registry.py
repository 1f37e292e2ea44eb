import logging
import random
import string
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, TypeVar

from sketchparty.errors import RoomCodesExhausted, RoomNotFound
from sketchparty.models import Connection, Room

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RoomRegistry:
    """Thread-safe in-memory registry of rooms and their participants.

    A single coarse lock serializes every structural change across all
    rooms. This bounds throughput (unrelated rooms wait on each other);
    sharding the lock per room code would keep the same contracts.
    Never send to a connection while holding the lock.
    """

    def __init__(
        self,
        code_length: int = 4,
        alphabet: str = string.digits,
        max_attempts: int = 100,
        min_players: int = 2,
        default_nickname: str = 'Anonymous',
        prune_empty: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.code_length = code_length
        self.alphabet = alphabet
        self.max_attempts = max_attempts
        self.min_players = min_players
        self.default_nickname = default_nickname
        self.prune_empty = prune_empty
        self._rng = rng or random.Random()
        self._rooms: Dict[str, Room] = {}
        # connection -> code of the room it is in
        self._memberships: Dict[Connection, str] = {}
        self._lock = threading.RLock()

    # ---------- rooms ---------- #

    def create_room(self) -> str:
        """Register an empty room under a fresh code and return the code."""
        with self._lock:
            code = self._fresh_code()
            self._rooms[code] = Room(code=code)
        logger.info(f"[room-create] code={code}")
        return code

    def join_room(self, code: str, connection: Connection, name: Optional[str] = None) -> bool:
        """Add or update a participant.

        Returns True when the room has reached the activation threshold
        and no round is running yet. Raises RoomNotFound for an unknown
        code, leaving every room untouched.
        """
        with self._lock:
            room = self._get(code)
            previous = self._memberships.get(connection)
            if previous is not None and previous != code:
                self._remove_locked(previous, connection)
            room.add(connection, name or self.default_nickname)
            self._memberships[connection] = code
            ready = len(room) >= self.min_players and not room.round_active
            size = len(room)
        logger.info(f"[room-join] code={code} size={size} ready={ready}")
        return ready

    def set_nickname(self, connection: Connection, name: str) -> None:
        with self._lock:
            code = self._memberships.get(connection)
            if code is None:
                return
            room = self._rooms.get(code)
            if room is not None and connection in room:
                room.add(connection, name)

    def remove_connection(self, code: str, connection: Connection) -> bool:
        """Remove a participant; True if that ended the room's round."""
        with self._lock:
            round_ended = self._remove_locked(code, connection)
        if round_ended:
            logger.info(f"[round-end] code={code} reason=departure")
        return round_ended

    # ---------- scoped access ---------- #

    @contextmanager
    def locked(self, code: str) -> Iterator[Room]:
        with self._lock:
            yield self._get(code)

    def with_room(self, code: str, fn: Callable[[Room], T]) -> T:
        """Run ``fn(room)`` under the registry lock and return its result."""
        with self.locked(code) as room:
            return fn(room)

    # ---------- snapshots ---------- #

    def connections(self, code: str) -> List[Connection]:
        with self._lock:
            room = self._rooms.get(code)
            return room.members if room is not None else []

    def nickname_of(self, code: str, connection: Connection) -> Optional[str]:
        with self._lock:
            room = self._rooms.get(code)
            if room is None:
                return None
            return room.participants.get(connection)

    def room_of(self, connection: Connection) -> Optional[str]:
        with self._lock:
            return self._memberships.get(connection)

    def is_member(self, code: str, connection: Connection) -> bool:
        with self._lock:
            return self._memberships.get(connection) == code

    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code):
        with self._lock:
            return code in self._rooms

    # ---------- helpers ---------- #

    def _get(self, code: str) -> Room:
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    def _remove_locked(self, code: str, connection: Connection) -> bool:
        room = self._rooms.get(code)
        if self._memberships.get(connection) == code:
            del self._memberships[connection]
        if room is None:
            return False
        round_ended = room.remove(connection, self.min_players)
        if self.prune_empty and not room.participants:
            del self._rooms[code]
            logger.info(f"[room-prune] code={code}")
        return round_ended

    def _fresh_code(self) -> str:
        for _ in range(self.max_attempts):
            code = ''.join(self._rng.choice(self.alphabet) for _ in range(self.code_length))
            if code not in self._rooms:
                return code
            logger.debug(f"[room-code-collision] code={code}")
        raise RoomCodesExhausted(self.max_attempts)
