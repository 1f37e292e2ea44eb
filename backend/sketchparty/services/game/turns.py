import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sketchparty.models import Connection, Message, MessageType, Room
from .words import WordList

logger = logging.getLogger(__name__)

START_GUESSING_TEXT = 'A player is drawing, try to guess the word!'


@dataclass(frozen=True)
class Round:
    code: str
    drawer: Connection
    word: str
    guessers: Tuple[Connection, ...]

    def notifications(self) -> List[Tuple[Connection, Message]]:
        """Private word for the drawer, then a word-less start notice for everyone else."""
        pending = [(self.drawer, Message(type=MessageType.YOUR_WORD, message=self.word))]
        for connection in self.guessers:
            pending.append((connection, Message(type=MessageType.START_GUESSING, message=START_GUESSING_TEXT)))
        return pending


@dataclass(frozen=True)
class GuessOutcome:
    correct: bool
    guesser_name: Optional[str]
    # the round started for the guesser, if the guess was correct
    next_round: Optional[Round] = None
    # drawer typed their own word; never relayed
    suppressed: bool = False


class TurnEngine:
    """Round state machine for a room: Idle <-> RoundActive.

    All methods mutate the room they are given and must be called with the
    registry lock held (see RoomRegistry.with_room). They only compute the
    notifications; delivery is the caller's job, after the lock is released.
    """

    def __init__(self, words: WordList, min_players: int = 2, rng: Optional[random.Random] = None):
        self.words = words
        self.min_players = min_players
        self._rng = rng or random.Random()

    def start_round(self, room: Room, next_drawer: Optional[Connection] = None) -> Optional[Round]:
        if len(room) < self.min_players:
            room.end_round()
            logger.info(f"[round-skip] code={room.code} players={len(room)}")
            return None

        drawer = self._pick_drawer(room, next_drawer)
        room.current_drawer = drawer
        room.secret_word = self.words.choose(self._rng)
        room.previous_drawer = None
        logger.info(f"[round-start] code={room.code} drawer={room.participants[drawer]!r}")
        return Round(
            code=room.code,
            drawer=drawer,
            word=room.secret_word,
            guessers=tuple(c for c in room.participants if c != drawer),
        )

    def start_if_idle(self, room: Room) -> Optional[Round]:
        if room.round_active or len(room) < self.min_players:
            return None
        return self.start_round(room)

    def resolve_guess(self, room: Room, guesser: Connection, text: Optional[str]) -> GuessOutcome:
        name = room.participants.get(guesser)
        if not room.round_active or text != room.secret_word:
            return GuessOutcome(correct=False, guesser_name=name)
        if guesser == room.current_drawer:
            return GuessOutcome(correct=False, guesser_name=name, suppressed=True)
        logger.info(f"[guess-correct] code={room.code} guesser={name!r}")
        return GuessOutcome(
            correct=True,
            guesser_name=name,
            next_round=self.start_round(room, next_drawer=guesser),
        )

    def _pick_drawer(self, room: Room, explicit: Optional[Connection]) -> Connection:
        members = room.members
        if explicit is not None and explicit in room:
            return explicit
        last = room.current_drawer or room.previous_drawer
        if last is None:
            return self._rng.choice(members)
        if last not in room:
            return members[0]
        return members[(members.index(last) + 1) % len(members)]
