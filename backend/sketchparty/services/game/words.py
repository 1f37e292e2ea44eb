import random
from typing import Iterable, Optional, Tuple


class WordList:
    """Fixed dictionary of secret words."""

    def __init__(self, words: Iterable[str]):
        cleaned: Tuple[str, ...] = tuple(w.strip() for w in words if w and w.strip())
        if not cleaned:
            raise ValueError('WordList needs at least one non-empty word')
        self.words = cleaned

    def __len__(self):
        return len(self.words)

    def choose(self, rng: Optional[random.Random] = None) -> str:
        # uniform, independent of earlier picks
        return (rng or random).choice(self.words)
