"""
Waterfall Method drilling.

A batch of words starts in the ``new`` stack and is worked through one stack
at a time. Words marked "know" go to ``known``, everything else goes to
``struggled``. When the active stack runs out, struggled words are pushed to
the front of ``known`` and drilled again, up to ``max_passes`` times, so the
session always terminates.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from .progress import SessionStats
from .words import WordRecord, filter_by_difficulty

MAX_PASSES = 3
DEFAULT_BATCH_SIZE = 10

NEW, STRUGGLED, KNOWN, MASTERED = 1, 2, 3, 4
STACK_NAMES = {NEW: "new", STRUGGLED: "struggled", KNOWN: "known", MASTERED: "mastered"}

KNOW = "know"
OUTCOMES = (KNOW, "struggled", "unknown")


@dataclass
class WaterfallSession:
    stacks: Dict[int, List[WordRecord]] = field(
        default_factory=lambda: {NEW: [], STRUGGLED: [], KNOWN: [], MASTERED: []}
    )
    mastered_words: Set[str] = field(default_factory=set)
    current_stack_index: int = NEW
    current_index: int = 0
    pass_number: int = 1
    max_passes: int = MAX_PASSES
    finished: bool = False
    stats: SessionStats = field(default_factory=SessionStats)
    # Card answered but not yet advanced past, and whether it left the active stack
    _answered: Optional[WordRecord] = None
    _card_removed: bool = False

    @classmethod
    def start_batch(
        cls,
        words: Sequence[WordRecord],
        batch_size: int = DEFAULT_BATCH_SIZE,
        difficulty_filter: str = "all",
        rng: Optional[random.Random] = None,
        mastered_words: Optional[Set[str]] = None,
        max_passes: int = MAX_PASSES,
    ) -> "WaterfallSession":
        """Sample up to ``batch_size`` words from the filtered pool into the new stack.

        An empty pool gives an empty session that is already finished.
        """
        rng = rng or random.Random()
        pool = filter_by_difficulty(words, difficulty_filter)
        sample = rng.sample(pool, min(max(batch_size, 0), len(pool)))
        session = cls(
            mastered_words=mastered_words if mastered_words is not None else set(),
            max_passes=max_passes,
        )
        session.stacks[NEW] = sample
        if not sample:
            session.finished = True
            session.stats.finish()
        return session

    @property
    def active_stack(self) -> List[WordRecord]:
        return self.stacks[self.current_stack_index]

    @property
    def active_stack_name(self) -> str:
        return STACK_NAMES[self.current_stack_index]

    @property
    def batch_size(self) -> int:
        return sum(len(stack) for stack in self.stacks.values())

    def current_card(self) -> Optional[WordRecord]:
        """The card on display. An answered card stays current until advance()."""
        if self.finished:
            return None
        if self._answered is not None:
            return self._answered
        stack = self.active_stack
        if self.current_index >= len(stack):
            return None
        return stack[self.current_index]

    def respond(self, word: str, outcome: str) -> bool:
        """Re-bucket ``word`` out of the active stack according to ``outcome``.

        Returns False (and changes nothing) when the session is over, the
        current card was already answered, or the word is not in the active
        stack.
        """
        if outcome not in OUTCOMES:
            raise ValueError(f"Unknown outcome '{outcome}'. Expected one of: {', '.join(OUTCOMES)}")
        if self.finished or self._answered is not None:
            return False

        stack = self.active_stack
        position = next((i for i, w in enumerate(stack) if w.word == word), None)
        if position is None:
            return False

        record = stack[position]
        is_current = position == self.current_index
        if outcome == KNOW:
            target = MASTERED if self.current_stack_index == MASTERED else KNOWN
            if target == MASTERED:
                self.mastered_words.add(record.word)
        else:
            target = STRUGGLED
        self.stats.record(outcome == KNOW)

        # A current card that stays in the active stack keeps its slot: that is
        # where appending it would leave it once this sweep is over.
        if not (is_current and target == self.current_stack_index):
            stack.pop(position)
            if position < self.current_index:
                self.current_index -= 1
            self.stacks[target].append(record)

        if is_current:
            self._answered = record
            self._card_removed = target != self.current_stack_index
        return True

    def advance(self) -> bool:
        """Move past the current card, settling the stack when it runs out.

        Returns False once the session has finished.
        """
        if self.finished:
            return False
        if not self._card_removed:
            self.current_index += 1
        # Otherwise the next card already slid into current_index
        self._answered = None
        self._card_removed = False
        if self.current_index >= len(self.active_stack):
            self.settle_stack()
        return not self.finished

    def settle_stack(self) -> None:
        """Decide what the session drills next once the active stack is exhausted."""
        while not self.finished:
            struggled = self.stacks[STRUGGLED]
            if struggled:
                self.stacks[KNOWN] = struggled + self.stacks[KNOWN]
                self.stacks[STRUGGLED] = []
                self.current_stack_index = KNOWN
                self.current_index = 0
                self.pass_number += 1
                if self.pass_number > self.max_passes:
                    self._finish()
                return

            if self.current_stack_index >= MASTERED:
                self._finish()
                return

            self.current_stack_index += 1
            self.current_index = 0
            if self.active_stack:
                return

    def _finish(self) -> None:
        self.finished = True
        self._answered = None
        self._card_removed = False
        self.stats.finish()

    def counts(self) -> Dict[str, int]:
        return {STACK_NAMES[index]: len(stack) for index, stack in self.stacks.items()}

    def to_dict(self) -> Dict[str, object]:
        card = self.current_card()
        return {
            "stack": self.active_stack_name,
            "stack_index": self.current_stack_index,
            "index": self.current_index,
            "pass": min(self.pass_number, self.max_passes),
            "max_passes": self.max_passes,
            "finished": self.finished,
            "counts": self.counts(),
            "card": card.to_dict() if card else None,
        }
