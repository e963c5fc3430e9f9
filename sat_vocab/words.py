from __future__ import annotations
import json
import os
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

DEBUG_MODE = os.getenv("DEBUG", "0") == "1"

WORDS_PATH: str = os.environ.get("SAT_VOCAB_WORDS", "words.json")

# Placeholder text used when a record leaves an optional field out
DEFAULT_DEFINITION = "Definition not available."
DEFAULT_EXAMPLE = "No example available."
DEFAULT_DIFFICULTY = "medium"
DEFAULT_PART_OF_SPEECH = "unknown"
DEFAULT_FREQUENCY = "unknown"
DEFAULT_ETYMOLOGY = "Etymology not available."
DEFAULT_MEMORY_AID = "No memory aid yet."

DIFFICULTY_TIERS = ("easy", "medium", "hard")
DIFFICULTY_FILTERS = {
    "all": set(DIFFICULTY_TIERS),
    "medium-or-hard": {"medium", "hard"},
    "hard-only": {"hard"},
}


@dataclass(frozen=True)
class WordRecord:
    word: str
    definition: str = DEFAULT_DEFINITION
    example: str = DEFAULT_EXAMPLE
    difficulty: str = DEFAULT_DIFFICULTY
    part_of_speech: str = DEFAULT_PART_OF_SPEECH
    frequency: str = DEFAULT_FREQUENCY
    etymology: str = DEFAULT_ETYMOLOGY
    synonyms: Tuple[str, ...] = field(default_factory=tuple)
    memory_aid: str = DEFAULT_MEMORY_AID

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "definition": self.definition,
            "example": self.example,
            "difficulty": self.difficulty,
            "partOfSpeech": self.part_of_speech,
            "frequency": self.frequency,
            "etymology": self.etymology,
            "synonyms": list(self.synonyms),
            "memoryAid": self.memory_aid,
        }


@dataclass
class WordSource:
    """Words loaded for the app, plus whether the built-in list had to stand in."""
    words: List[WordRecord]
    fallback: bool = False
    error: Optional[str] = None


FALLBACK_WORDS: List[WordRecord] = [
    WordRecord(word="Happy", definition="Feeling joy or pleasure",
               example="She was happy to see her friend.", difficulty="easy",
               part_of_speech="adjective", synonyms=("glad", "cheerful")),
    WordRecord(word="Brave", definition="Showing courage",
               example="The brave firefighter saved the cat.", difficulty="easy",
               part_of_speech="adjective", synonyms=("courageous", "bold")),
    WordRecord(word="Curious", definition="Eager to learn or know",
               example="The curious child asked many questions.", difficulty="medium",
               part_of_speech="adjective", synonyms=("inquisitive",)),
]


def _text(raw: Dict[str, Any], key: str, default: str) -> str:
    value = raw.get(key)
    if value is None:
        return default
    value = str(value).strip()
    return value or default


def _first_example(raw: Dict[str, Any]) -> str:
    example = raw.get("example")
    if example and str(example).strip():
        return str(example).strip()
    examples = raw.get("examples")
    if isinstance(examples, (list, tuple)):
        for item in examples:
            if item and str(item).strip():
                return str(item).strip()
    elif isinstance(examples, str) and examples.strip():
        return examples.strip()
    return DEFAULT_EXAMPLE


def _synonyms(raw: Dict[str, Any]) -> Tuple[str, ...]:
    value = raw.get("synonyms")
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(s.strip() for s in value.split(",") if s.strip())
    return tuple(str(s).strip() for s in value if str(s).strip())


def word_from_dict(raw: Dict[str, Any]) -> WordRecord:
    """Build a WordRecord from a JSON object, resolving every missing field to its default.

    Accepts both the camelCase keys of words.json (``partOfSpeech``,
    ``memoryAid``) and snake_case ones. Raises ``ValueError`` when the
    record has no usable ``word``.
    """
    word = raw.get("word")
    if not isinstance(word, str) or not word.strip():
        raise ValueError(f"word record without a word: {raw!r}")

    difficulty = _text(raw, "difficulty", DEFAULT_DIFFICULTY).lower()
    if difficulty not in DIFFICULTY_TIERS:
        difficulty = DEFAULT_DIFFICULTY

    return WordRecord(
        word=word.strip(),
        definition=_text(raw, "definition", DEFAULT_DEFINITION),
        example=_first_example(raw),
        difficulty=difficulty,
        part_of_speech=_text(raw, "partOfSpeech", _text(raw, "part_of_speech", DEFAULT_PART_OF_SPEECH)),
        frequency=_text(raw, "frequency", DEFAULT_FREQUENCY),
        etymology=_text(raw, "etymology", DEFAULT_ETYMOLOGY),
        synonyms=_synonyms(raw),
        memory_aid=_text(raw, "memoryAid", _text(raw, "memory_aid", DEFAULT_MEMORY_AID)),
    )


def parse_words(items: Iterable[Any]) -> List[WordRecord]:
    """Convert raw JSON items to WordRecords. Bad items are skipped, duplicate words keep the first."""
    records: List[WordRecord] = []
    seen: set[str] = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            record = word_from_dict(item)
        except ValueError as e:
            if DEBUG_MODE:
                print(f"⚠️ Skipping word record: {e}")
            continue
        if record.word in seen:
            continue
        seen.add(record.word)
        records.append(record)
    return records


def load_words(path: Optional[str] = None) -> WordSource:
    """Load the word list from a JSON file.

    Any failure (missing file, invalid JSON, wrong shape, no usable records)
    falls back to FALLBACK_WORDS so the app stays usable.
    """
    path = path or WORDS_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict) and isinstance(data.get("words"), list):
            data = data["words"]
        if not isinstance(data, list):
            raise ValueError("word file must contain a JSON array")
        words = parse_words(data)
        if not words:
            raise ValueError("word file contains no usable words")
    except (OSError, ValueError) as e:
        print(f"⚠️ Error loading words from {path}: {e}. Using built-in word list.")
        return WordSource(words=list(FALLBACK_WORDS), fallback=True, error=str(e))

    if DEBUG_MODE:
        print(f"📚 Loaded {len(words)} words from {path}")
    return WordSource(words=words)


def filter_by_difficulty(words: Sequence[WordRecord], difficulty_filter: str = "all") -> List[WordRecord]:
    tiers = DIFFICULTY_FILTERS.get(difficulty_filter)
    if tiers is None:
        raise ValueError(
            f"Unknown difficulty filter '{difficulty_filter}'. "
            f"Expected one of: {', '.join(DIFFICULTY_FILTERS)}"
        )
    return [w for w in words if w.difficulty in tiers]


def shuffled(words: Iterable[WordRecord], rng: Optional[random.Random] = None) -> List[WordRecord]:
    """Return a shuffled copy (random.shuffle is a Fisher-Yates shuffle)."""
    rng = rng or random.Random()
    result = list(words)
    rng.shuffle(result)
    return result
