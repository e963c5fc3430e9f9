import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .progress import SessionStats
from .words import WordRecord, shuffled

MAX_POOL = 50
DEFAULT_CARDS = 10

RESULT_MESSAGES = [
    (90, "Outstanding! You're a vocabulary champion!"),
    (70, "Great job! You're getting better every day!"),
    (50, "Good work! Keep practicing to improve!"),
    (0, "Nice try! Practice makes perfect!"),
]


def result_message(percentage: int) -> str:
    for threshold, message in RESULT_MESSAGES:
        if percentage >= threshold:
            return message
    return RESULT_MESSAGES[-1][1]


@dataclass
class QuickRound:
    """The simple flashcard game: flip a card, say whether you knew it, next card."""
    pool: List[WordRecord]
    rng: random.Random = field(default_factory=random.Random)
    total_cards: int = DEFAULT_CARDS
    cards: List[WordRecord] = field(default_factory=list)
    current_index: int = 0
    score: int = 0
    flipped: bool = False
    answered: bool = False
    stats: SessionStats = field(default_factory=SessionStats)

    @classmethod
    def from_words(cls, words: Sequence[WordRecord], rng: Optional[random.Random] = None) -> "QuickRound":
        """Keep a shuffled pool of at most MAX_POOL words to draw rounds from."""
        rng = rng or random.Random()
        return cls(pool=shuffled(words, rng)[:MAX_POOL], rng=rng)

    def start(self, total_cards: Optional[int] = None) -> None:
        if total_cards is not None:
            self.total_cards = max(1, total_cards)
        self.pool = shuffled(self.pool, self.rng)
        self.cards = self.pool[:self.total_cards]
        self._reset()

    def _reset(self) -> None:
        self.current_index = 0
        self.score = 0
        self.flipped = False
        self.answered = False
        self.stats = SessionStats()

    @property
    def finished(self) -> bool:
        return self.current_index >= len(self.cards)

    def current_card(self) -> Optional[WordRecord]:
        if self.finished:
            return None
        return self.cards[self.current_index]

    def flip(self) -> bool:
        if self.finished or self.flipped:
            return False
        self.flipped = True
        return True

    def mark_answer(self, correct: bool) -> bool:
        """Score the flipped card. Each card can be marked once."""
        if self.finished or not self.flipped or self.answered:
            return False
        if correct:
            self.score += 1
        self.stats.record(correct)
        self.answered = True
        return True

    def next_card(self) -> Optional[WordRecord]:
        if not self.finished:
            self.current_index += 1
        self.flipped = False
        self.answered = False
        if self.finished:
            self.stats.finish()
        return self.current_card()

    def try_again(self) -> None:
        """Replay the same cards in the same order."""
        self._reset()

    def new_round(self) -> None:
        self.start()

    def results(self) -> Dict[str, Any]:
        total = len(self.cards)
        percentage = round(self.score / total * 100) if total else 0
        return {
            "score": self.score,
            "total": total,
            "percentage": percentage,
            "message": result_message(percentage),
        }

    def to_dict(self) -> Dict[str, Any]:
        card = self.current_card()
        return {
            "index": self.current_index,
            "total": len(self.cards),
            "score": self.score,
            "flipped": self.flipped,
            "answered": self.answered,
            "finished": self.finished,
            "card": card.to_dict() if card else None,
        }
