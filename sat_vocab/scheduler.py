import datetime
import math
import random
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .progress import SessionStats
from .words import WordRecord

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_QUALITY = 3
MASTERY_STREAK = 3
MASTERY_INTERVAL = 21


@dataclass
class ReviewState:
    """Per-word SM-2 scheduling data."""
    next_review_date: datetime.datetime
    interval: int = 1
    repetitions: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    last_review_date: Optional[datetime.datetime] = None
    consecutive_correct: int = 0


def new_review_state(now: datetime.datetime) -> ReviewState:
    """State for a word seen for the first time: due immediately."""
    return ReviewState(next_review_date=now)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def sm2_schedule(
    interval: int,
    ease_factor: float,
    repetitions: int,
    quality: int,
) -> Tuple[int, float, int]:
    """
    SM-2 (SuperMemo 2) scheduling step.

    Quality grades (0-5):
      0 – complete blackout
      1 – very poor, wrong answer remembered after seeing correct one
      2 – wrong answer but correct one seemed easy to recall
      3 – correct answer with serious difficulty
      4 – correct answer after some hesitation
      5 – perfect, instant recall

    Algorithm:
      1. If quality >= 3, compute the interval from the repetition count:
           repetitions == 0 → 1 day
           repetitions == 1 → 6 days
           otherwise        → previous interval × current E-Factor (rounded)
         and increment repetitions. Otherwise reset repetitions to 0 and the
         interval to 1.
      2. Update the E-Factor (both branches), never below 1.3.

    Returns:
        (new_interval, new_ease_factor, new_repetitions)
    """
    # Clamp quality to valid range
    quality = max(0, min(5, quality))

    if quality >= PASSING_QUALITY:
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            new_interval = _round_half_up(interval * ease_factor)
        new_reps = repetitions + 1
    else:
        # Lapse: reset repetitions and interval
        new_reps = 0
        new_interval = 1

    new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    if new_ef < MIN_EASE_FACTOR:
        new_ef = MIN_EASE_FACTOR

    return new_interval, new_ef, new_reps


def review(state: ReviewState, quality: int, now: datetime.datetime) -> ReviewState:
    """Apply one graded answer to a review state and return the new state."""
    new_interval, new_ef, new_reps = sm2_schedule(
        state.interval, state.ease_factor, state.repetitions, quality
    )
    if quality >= PASSING_QUALITY:
        consecutive = state.consecutive_correct + 1
    else:
        consecutive = 0
    return replace(
        state,
        interval=new_interval,
        ease_factor=new_ef,
        repetitions=new_reps,
        consecutive_correct=consecutive,
        next_review_date=now + datetime.timedelta(days=new_interval),
        last_review_date=now,
    )


def is_mastered(state: ReviewState) -> bool:
    return state.consecutive_correct >= MASTERY_STREAK and state.interval >= MASTERY_INTERVAL


def due_words(
    words: Sequence[WordRecord],
    review_states: Mapping[str, ReviewState],
    now: datetime.datetime,
    rng: Optional[random.Random] = None,
) -> List[WordRecord]:
    """Return every word due at ``now`` in random order.

    Words without a review state have never been studied and count as due.
    """
    rng = rng or random.Random()
    due: List[WordRecord] = []
    for word in words:
        state = review_states.get(word.word)
        if state is None or state.next_review_date <= now:
            due.append(word)
    rng.shuffle(due)
    return due


@dataclass
class SpacedSession:
    """One spaced-repetition review pass over the words due at session start.

    ``review_states`` and ``mastered_words`` are owned by the caller and
    updated in place as answers come in.
    """
    words: List[WordRecord]
    review_states: Dict[str, ReviewState]
    mastered_words: Set[str] = field(default_factory=set)
    started_at: datetime.datetime = field(default_factory=lambda: datetime.datetime.now(datetime.UTC))
    current_index: int = 0
    stats: SessionStats = field(default_factory=SessionStats)
    answered: bool = False

    @classmethod
    def start(
        cls,
        words: Sequence[WordRecord],
        review_states: Dict[str, ReviewState],
        mastered_words: Optional[Set[str]] = None,
        now: Optional[datetime.datetime] = None,
        rng: Optional[random.Random] = None,
    ) -> "SpacedSession":
        now = now or datetime.datetime.now(datetime.UTC)
        return cls(
            words=due_words(words, review_states, now, rng),
            review_states=review_states,
            mastered_words=mastered_words if mastered_words is not None else set(),
            started_at=now,
            stats=SessionStats(start_time=now),
        )

    @property
    def finished(self) -> bool:
        return self.current_index >= len(self.words)

    @property
    def remaining(self) -> int:
        return max(0, len(self.words) - self.current_index)

    def current_card(self) -> Optional[WordRecord]:
        if self.finished:
            return None
        return self.words[self.current_index]

    def respond(self, word: str, quality: int, now: Optional[datetime.datetime] = None) -> Optional[ReviewState]:
        """Grade the current card. Returns the updated state, or None for a stale word."""
        card = self.current_card()
        if card is None or card.word != word or self.answered:
            return None
        now = now or datetime.datetime.now(datetime.UTC)

        state = self.review_states.get(word) or new_review_state(self.started_at)
        updated = review(state, quality, now)
        self.review_states[word] = updated
        if is_mastered(updated):
            self.mastered_words.add(word)

        self.stats.record(quality >= PASSING_QUALITY)
        self.answered = True
        return updated

    def advance(self) -> bool:
        """Move to the next card. Returns False once the session is over."""
        if self.finished:
            return False
        self.current_index += 1
        self.answered = False
        if self.finished:
            self.stats.finish()
        return not self.finished
