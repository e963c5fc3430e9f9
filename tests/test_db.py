"""Tests for progress and review-state persistence."""

import datetime
import json

import pytest
from sqlalchemy import create_engine

from sat_vocab import db
from sat_vocab.progress import SessionStats, UserProgress
from sat_vocab.scheduler import ReviewState


NOW = datetime.datetime(2024, 6, 1, 9, 0, tzinfo=datetime.UTC)


@pytest.fixture(autouse=True)
def setup_db(tmp_path, monkeypatch):
    # Use a temporary SQLite DB, and rebind engine/session to it
    test_db = str(tmp_path / "test.db")
    monkeypatch.setenv("SAT_VOCAB_DB", test_db)
    db.engine = create_engine(f"sqlite:///{test_db}")
    db.SessionLocal = db.sessionmaker(bind=db.engine, expire_on_commit=False)
    db.init_db()
    yield


def test_tables_created() -> None:
    assert db.is_db_initialized()


def test_load_progress_without_saved_data() -> None:
    assert db.load_progress() == UserProgress()


def test_progress_round_trip() -> None:
    progress = UserProgress(mastered_words={"abate", "laconic"}, study_streak=3,
                            last_study_date=NOW.date(), total_words_learned=2)
    db.save_progress(progress)
    assert db.load_progress() == progress

    raw = json.loads(db.get_value(db.PROGRESS_KEY))
    assert raw["masteredWords"] == ["abate", "laconic"]


def test_save_progress_overwrites() -> None:
    db.save_progress(UserProgress(study_streak=1))
    db.save_progress(UserProgress(study_streak=2))
    assert db.load_progress().study_streak == 2

    session = db.get_session()
    assert session.query(db.KeyValue).count() == 1
    session.close()


@pytest.mark.parametrize("raw", [
    "{not json",
    "[1, 2, 3]",
    "{\"accuracyHistory\": 5}",
    "{\"accuracyHistory\": [{\"correct\": \"lots\", \"total\": 1}]}",
    "{\"masteredWords\": \"abc\"}",
])
def test_malformed_progress_starts_fresh(raw: str) -> None:
    db.set_value(db.PROGRESS_KEY, raw)
    assert db.load_progress() == UserProgress()


def test_review_states_round_trip() -> None:
    states = {
        "abate": ReviewState(next_review_date=NOW + datetime.timedelta(days=6), interval=6,
                             repetitions=2, ease_factor=2.6, last_review_date=NOW,
                             consecutive_correct=2),
        "wry": ReviewState(next_review_date=NOW),
    }
    db.save_review_states(states)
    loaded = db.load_review_states()
    assert loaded == states
    assert loaded["abate"].next_review_date.tzinfo is not None
    assert loaded["wry"].last_review_date is None


def test_review_states_update_in_place() -> None:
    db.save_review_states({"abate": ReviewState(next_review_date=NOW)})
    db.save_review_states({"abate": ReviewState(next_review_date=NOW, interval=6, repetitions=2)})
    loaded = db.load_review_states()
    assert len(loaded) == 1
    assert loaded["abate"].interval == 6


def test_count_due() -> None:
    db.save_review_states({
        "past": ReviewState(next_review_date=NOW - datetime.timedelta(days=1)),
        "now": ReviewState(next_review_date=NOW),
        "future": ReviewState(next_review_date=NOW + datetime.timedelta(days=1)),
    })
    assert db.count_due(NOW) == 2


def test_record_session_persists_progress() -> None:
    progress = UserProgress(mastered_words={"abate"})
    stats = SessionStats(words_studied=4, correct=3, start_time=NOW)
    db.record_session(progress, stats, "waterfall", NOW)

    saved = db.load_progress()
    assert saved.total_words_learned == 1
    assert saved.study_streak == 1
    assert saved.accuracy_history[-1]["type"] == "waterfall"
    assert saved.accuracy_history[-1]["correct"] == 3
    assert saved.accuracy_history[-1]["total"] == 4


def test_check_database_script(capsys) -> None:
    import check_database
    db.save_progress(UserProgress(mastered_words={"abate"}, study_streak=2))
    db.save_review_states({"abate": ReviewState(next_review_date=NOW)})
    check_database.check_database_contents()
    out = capsys.readouterr().out
    assert "Mastered words: 1" in out
    assert "REVIEW STATES (1 words, 1 due)" in out
    assert "abate" in out
