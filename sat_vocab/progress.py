from __future__ import annotations
import datetime
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

HISTORY_LIMIT = 30


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


@dataclass
class SessionStats:
    """Counters for a single study session."""
    words_studied: int = 0
    correct: int = 0
    start_time: datetime.datetime = field(default_factory=_utcnow)
    end_time: Optional[datetime.datetime] = None

    def record(self, correct: bool) -> None:
        self.words_studied += 1
        if correct:
            self.correct += 1

    def finish(self, now: Optional[datetime.datetime] = None) -> None:
        if self.end_time is None:
            self.end_time = now or _utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "words_studied": self.words_studied,
            "correct": self.correct,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
        }


def _history_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Copy one accuracy entry, checking the counters are integers."""
    if not isinstance(entry, dict):
        raise TypeError("accuracy entries must be JSON objects")
    result = dict(entry)
    result["correct"] = int(entry.get("correct", 0))
    result["total"] = int(entry.get("total", 0))
    return result


@dataclass
class UserProgress:
    """Cross-session progress, stored as JSON under the satVocabProgress key."""
    mastered_words: Set[str] = field(default_factory=set)
    study_streak: int = 0
    last_study_date: Optional[datetime.date] = None
    accuracy_history: List[Dict[str, Any]] = field(default_factory=list)
    total_words_learned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "masteredWords": sorted(self.mastered_words),
            "studyStreak": self.study_streak,
            "lastStudyDate": self.last_study_date.isoformat() if self.last_study_date else None,
            "accuracyHistory": list(self.accuracy_history),
            "totalWordsLearned": self.total_words_learned,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProgress":
        """Rebuild progress from its JSON form.

        Raises ValueError/TypeError on malformed data; callers treat that as
        "no saved progress".
        """
        if not isinstance(data, dict):
            raise TypeError("progress must be a JSON object")
        last = data.get("lastStudyDate")
        history = data.get("accuracyHistory") or []
        if not isinstance(history, list):
            raise TypeError("accuracyHistory must be a list")
        raw_mastered = data.get("masteredWords") or []
        if not isinstance(raw_mastered, list):
            raise TypeError("masteredWords must be a list")
        mastered = set(str(w) for w in raw_mastered)
        return cls(
            mastered_words=mastered,
            study_streak=int(data.get("studyStreak") or 0),
            last_study_date=datetime.date.fromisoformat(last[:10]) if last else None,
            accuracy_history=[_history_entry(entry) for entry in history][-HISTORY_LIMIT:],
            total_words_learned=int(data.get("totalWordsLearned") or len(mastered)),
        )


def update_streak(progress: UserProgress, today: datetime.date) -> None:
    if progress.last_study_date == today - datetime.timedelta(days=1):
        progress.study_streak += 1
    else:
        progress.study_streak = 1
    progress.last_study_date = today


def end_session(
    progress: UserProgress,
    stats: SessionStats,
    session_type: str,
    now: Optional[datetime.datetime] = None,
) -> UserProgress:
    """Fold a finished session into the user's progress.

    Appends an accuracy entry (keeping the latest HISTORY_LIMIT), updates the
    study streak and the learned-word total. Returns the same object.
    """
    now = now or _utcnow()
    stats.finish(now)

    progress.accuracy_history.append({
        "date": now.isoformat(),
        "correct": stats.correct,
        "total": stats.words_studied,
        "type": session_type,
    })
    if len(progress.accuracy_history) > HISTORY_LIMIT:
        del progress.accuracy_history[:-HISTORY_LIMIT]

    update_streak(progress, now.date())
    progress.total_words_learned = len(progress.mastered_words)
    return progress


def accuracy_rate(history: List[Dict[str, Any]]) -> float:
    """Overall accuracy across the history, 0.0 when nothing has been answered."""
    correct = sum(int(entry.get("correct", 0)) for entry in history)
    total = sum(int(entry.get("total", 0)) for entry in history)
    if total == 0:
        return 0.0
    return correct / total


def progress_summary(progress: UserProgress) -> Dict[str, Any]:
    return {
        "mastered": len(progress.mastered_words),
        "total_words_learned": progress.total_words_learned,
        "study_streak": progress.study_streak,
        "last_study_date": progress.last_study_date.isoformat() if progress.last_study_date else None,
        "sessions": len(progress.accuracy_history),
        "accuracy": round(accuracy_rate(progress.accuracy_history) * 100, 1),
    }
