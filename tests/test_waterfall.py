"""Tests for Waterfall Method batches."""

import random

import pytest

from sat_vocab.waterfall import (
    KNOWN, MASTERED, NEW, STRUGGLED, WaterfallSession, OUTCOMES,
)
from sat_vocab.words import WordRecord


def make_words(count: int, difficulty: str = "medium") -> list[WordRecord]:
    return [WordRecord(word=f"w{i}", difficulty=difficulty) for i in range(count)]


def stack_words(session: WaterfallSession) -> list[str]:
    return [w.word for stack in session.stacks.values() for w in stack]


def assert_conserved(session: WaterfallSession, batch: set[str]) -> None:
    words = stack_words(session)
    assert len(words) == len(batch)
    assert set(words) == batch


def answer_current(session: WaterfallSession, outcome: str) -> str:
    card = session.current_card()
    assert card is not None
    assert session.respond(card.word, outcome)
    session.advance()
    return card.word


# ── Starting a batch ──────────────────────────────────────────────

def test_start_batch_seeds_new_stack() -> None:
    session = WaterfallSession.start_batch(make_words(20), 5, "all", random.Random(1))
    assert len(session.stacks[NEW]) == 5
    assert session.stacks[STRUGGLED] == []
    assert session.stacks[KNOWN] == []
    assert session.stacks[MASTERED] == []
    assert session.current_stack_index == NEW
    assert session.current_index == 0
    assert session.pass_number == 1
    assert not session.finished
    assert len(set(stack_words(session))) == 5


def test_start_batch_caps_at_pool_size() -> None:
    session = WaterfallSession.start_batch(make_words(3), 10, "all", random.Random(1))
    assert session.batch_size == 3


def test_start_batch_filters_difficulty() -> None:
    words = make_words(4, "easy") + [WordRecord(word="hard1", difficulty="hard"),
                                     WordRecord(word="mid1", difficulty="medium")]
    hard = WaterfallSession.start_batch(words, 10, "hard-only", random.Random(1))
    assert stack_words(hard) == ["hard1"]

    medium_up = WaterfallSession.start_batch(words, 10, "medium-or-hard", random.Random(1))
    assert set(stack_words(medium_up)) == {"hard1", "mid1"}


def test_empty_pool_gives_finished_session() -> None:
    session = WaterfallSession.start_batch(make_words(5, "easy"), 10, "hard-only")
    assert session.finished
    assert session.batch_size == 0
    assert session.current_card() is None
    assert session.advance() is False


def test_unknown_filter_rejected() -> None:
    with pytest.raises(ValueError):
        WaterfallSession.start_batch(make_words(3), 3, "impossible")


def test_same_seed_same_batch() -> None:
    words = make_words(30)
    a = WaterfallSession.start_batch(words, 8, "all", random.Random(7))
    b = WaterfallSession.start_batch(words, 8, "all", random.Random(7))
    assert stack_words(a) == stack_words(b)


# ── Responding ────────────────────────────────────────────────────

def test_all_known_batch_finishes_after_known_sweep() -> None:
    session = WaterfallSession.start_batch(make_words(3), 3, "all", random.Random(2))
    batch = set(stack_words(session))

    for _ in range(3):
        answer_current(session, "know")
        assert_conserved(session, batch)

    # New is drained; the struggled stack is empty so known is drilled next
    assert session.current_stack_index == KNOWN
    assert len(session.stacks[KNOWN]) == 3
    assert session.pass_number == 1

    for _ in range(3):
        answer_current(session, "know")
    assert session.finished
    assert session.current_card() is None
    assert session.stats.words_studied == 6
    assert session.stats.correct == 6
    assert_conserved(session, batch)


def test_struggled_words_go_to_front_of_known() -> None:
    session = WaterfallSession.start_batch(make_words(4), 4, "all", random.Random(3))
    missed = answer_current(session, "unknown")
    assert [w.word for w in session.stacks[STRUGGLED]] == [missed]
    for _ in range(3):
        answer_current(session, "know")

    assert session.current_stack_index == KNOWN
    assert session.pass_number == 2
    assert session.stacks[STRUGGLED] == []
    assert session.stacks[KNOWN][0].word == missed
    assert session.current_card().word == missed


def test_struggled_outcome_counts_as_miss() -> None:
    session = WaterfallSession.start_batch(make_words(2), 2, "all", random.Random(3))
    answer_current(session, "struggled")
    assert len(session.stacks[STRUGGLED]) == 1
    assert session.stats.words_studied == 1
    assert session.stats.correct == 0


def test_answered_card_stays_current_until_advance() -> None:
    session = WaterfallSession.start_batch(make_words(3), 3, "all", random.Random(4))
    card = session.current_card()
    assert session.respond(card.word, "know")
    assert session.current_card() == card
    # One answer per card
    assert session.respond(card.word, "unknown") is False
    session.advance()
    assert session.current_card() != card


def test_stale_word_is_noop() -> None:
    session = WaterfallSession.start_batch(make_words(3), 3, "all", random.Random(4))
    before = {index: list(stack) for index, stack in session.stacks.items()}
    assert session.respond("not-in-batch", "know") is False
    assert session.stacks == before
    assert session.stats.words_studied == 0


def test_unknown_outcome_rejected() -> None:
    session = WaterfallSession.start_batch(make_words(2), 2, "all", random.Random(4))
    with pytest.raises(ValueError):
        session.respond(session.current_card().word, "maybe")


def test_know_on_mastered_stack_marks_word_mastered() -> None:
    word = WordRecord(word="apex")
    mastered: set[str] = set()
    session = WaterfallSession(
        stacks={NEW: [], STRUGGLED: [], KNOWN: [], MASTERED: [word]},
        mastered_words=mastered,
        current_stack_index=MASTERED,
    )
    assert session.respond("apex", "know")
    assert mastered == {"apex"}
    assert session.stacks[MASTERED] == [word]
    session.advance()
    assert session.finished


def test_finished_session_rejects_everything() -> None:
    session = WaterfallSession.start_batch(make_words(1), 1, "all", random.Random(4))
    answer_current(session, "know")
    answer_current(session, "know")
    assert session.finished
    assert session.respond("w0", "know") is False
    assert session.advance() is False


# ── Termination and conservation ──────────────────────────────────

def test_always_unknown_terminates_after_max_passes() -> None:
    session = WaterfallSession.start_batch(make_words(4), 4, "all", random.Random(5))
    batch = set(stack_words(session))
    steps = 0
    while not session.finished:
        answer_current(session, "unknown")
        assert_conserved(session, batch)
        steps += 1
        assert steps <= 100

    # One sweep of new plus one sweep of known per remaining pass
    assert steps == 4 * session.max_passes
    assert session.pass_number == session.max_passes + 1
    assert {w.word for w in session.stacks[KNOWN]} == batch


@pytest.mark.parametrize("seed", range(10))
def test_random_answers_conserve_and_terminate(seed: int) -> None:
    rng = random.Random(seed)
    session = WaterfallSession.start_batch(make_words(30), 8, "all", rng)
    batch = set(stack_words(session))
    limit = (session.max_passes + 1) * len(batch) + 3
    steps = 0
    while not session.finished:
        answer_current(session, rng.choice(OUTCOMES))
        assert_conserved(session, batch)
        steps += 1
        assert steps <= limit
    assert_conserved(session, batch)
