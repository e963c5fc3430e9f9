from __future__ import annotations
from sqlalchemy import create_engine, Integer, Float as SAFloat, String, DateTime, Text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session, Mapped, mapped_column
import datetime
import json
import os
from typing import Optional, Dict, Mapping

from .progress import SessionStats, UserProgress, end_session
from .scheduler import ReviewState

DEBUG_MODE = os.getenv("DEBUG", "0") == "1"

PROGRESS_KEY = "satVocabProgress"


class Base(DeclarativeBase):
    pass
DB_PATH: str = os.environ.get("SAT_VOCAB_DB", "sat_vocab.db")
engine = create_engine(f"sqlite:///{DB_PATH}")
# Prevent attribute expiration on commit so returned objects remain accessible
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


class KeyValue(Base):
    """JSON documents stored by key (the browser app's localStorage)."""
    __tablename__ = "key_value"
    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime, default=lambda: datetime.datetime.now(datetime.UTC), onupdate=lambda: datetime.datetime.now(datetime.UTC))


class ReviewStateRow(Base):
    __tablename__ = "review_states"
    word: Mapped[str] = mapped_column(String, primary_key=True)
    next_review: Mapped[datetime.datetime] = mapped_column(DateTime, default=lambda: datetime.datetime.now(datetime.UTC))
    last_review: Mapped[Optional[datetime.datetime]] = mapped_column(DateTime, nullable=True)
    interval: Mapped[int] = mapped_column(Integer, default=1)
    ease_factor: Mapped[float] = mapped_column(SAFloat, default=2.5)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    consecutive_correct: Mapped[int] = mapped_column(Integer, default=0)


def is_db_initialized() -> bool:
    """Check if the database is already initialized by checking if tables exist."""
    from sqlalchemy import inspect
    inspector = inspect(engine)
    table_names = inspector.get_table_names()

    required_tables = {'key_value', 'review_states'}
    return required_tables.issubset(set(table_names))


def init_db() -> None:
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


def _as_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    # SQLite hands datetimes back without tzinfo
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value


def get_value(key: str) -> Optional[str]:
    session: Session = get_session()
    row: Optional[KeyValue] = session.get(KeyValue, key)
    value = row.value if row else None
    session.close()
    return value


def set_value(key: str, value: str) -> None:
    session: Session = get_session()
    row: Optional[KeyValue] = session.get(KeyValue, key)
    if row is None:
        row = KeyValue(key=key, value=value)
        session.add(row)
    else:
        row.value = value
    session.commit()
    session.close()


def load_progress(key: str = PROGRESS_KEY) -> UserProgress:
    """Load saved progress. Missing or unreadable progress starts fresh."""
    raw = get_value(key)
    if raw is None:
        return UserProgress()
    try:
        return UserProgress.from_dict(json.loads(raw))
    except (ValueError, TypeError, KeyError) as e:
        print(f"⚠️ Saved progress could not be read ({e}); starting fresh.")
        return UserProgress()


def save_progress(progress: UserProgress, key: str = PROGRESS_KEY) -> None:
    set_value(key, json.dumps(progress.to_dict()))
    if DEBUG_MODE:
        print(f"💾 Progress saved: {len(progress.mastered_words)} mastered, streak {progress.study_streak}")


def load_review_states() -> Dict[str, ReviewState]:
    session: Session = get_session()
    rows = session.query(ReviewStateRow).all()
    states: Dict[str, ReviewState] = {}
    for row in rows:
        states[row.word] = ReviewState(
            next_review_date=_as_utc(row.next_review),
            interval=row.interval,
            repetitions=row.repetitions,
            ease_factor=row.ease_factor,
            last_review_date=_as_utc(row.last_review),
            consecutive_correct=row.consecutive_correct,
        )
    session.close()
    return states


def save_review_states(states: Mapping[str, ReviewState]) -> None:
    """Insert or update the review state of every word in ``states``."""
    session: Session = get_session()
    for word, state in states.items():
        row: Optional[ReviewStateRow] = session.get(ReviewStateRow, word)
        if row is None:
            row = ReviewStateRow(word=word)
            session.add(row)
        row.next_review = state.next_review_date
        row.last_review = state.last_review_date
        row.interval = state.interval
        row.ease_factor = state.ease_factor
        row.repetitions = state.repetitions
        row.consecutive_correct = state.consecutive_correct
    session.commit()
    session.close()


def count_due(now: Optional[datetime.datetime] = None) -> int:
    """Number of stored review states due at ``now`` (never-seen words are not counted)."""
    now = now or datetime.datetime.now(datetime.UTC)
    if now.tzinfo is not None:
        now = now.astimezone(datetime.UTC).replace(tzinfo=None)
    session: Session = get_session()
    due = session.query(ReviewStateRow).filter(ReviewStateRow.next_review <= now).count()
    session.close()
    return due


def record_session(
    progress: UserProgress,
    stats: SessionStats,
    session_type: str,
    now: Optional[datetime.datetime] = None,
) -> UserProgress:
    """Fold a finished session into ``progress`` and persist the snapshot."""
    end_session(progress, stats, session_type, now)
    save_progress(progress)
    if DEBUG_MODE:
        print(f"📊 {session_type} session recorded: {stats.correct}/{stats.words_studied} correct")
    return progress
