#!/usr/bin/env python3
"""
Script to examine the contents of the SAT Vocab progress database:
saved progress and the per-word review schedule.
"""

import sys
import os
import datetime

# Add the current directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sat_vocab import db
from sat_vocab.progress import progress_summary

def check_database_contents() -> None:
    """Print saved progress and the review schedule."""
    print("🔍 Examining SAT Vocab Database Contents")
    print("=" * 60)

    try:
        progress = db.load_progress()
        summary = progress_summary(progress)
        print(f"\n📊 PROGRESS:")
        print(f"     Mastered words: {summary['mastered']}")
        print(f"     Study streak:   {summary['study_streak']}")
        print(f"     Last studied:   {summary['last_study_date'] or 'never'}")
        print(f"     Sessions:       {summary['sessions']} (accuracy {summary['accuracy']}%)")

        states = db.load_review_states()
        now = datetime.datetime.now(datetime.UTC)
        due = [word for word, s in states.items() if s.next_review_date <= now]
        print(f"\n🃏 REVIEW STATES ({len(states)} words, {len(due)} due):")
        upcoming = sorted(states.items(), key=lambda item: item[1].next_review_date)
        for i, (word, s) in enumerate(upcoming[:10], 1):  # Show next 10
            print(f"  {i:2d}. {word} | Next: {s.next_review_date:%Y-%m-%d} | Interval: {s.interval}d | EF: {s.ease_factor:.2f} | Reps: {s.repetitions}")
        if len(upcoming) > 10:
            print(f"     ... and {len(upcoming) - 10} more words")

    except Exception as e:
        print(f"❌ Error examining database: {e}")

if __name__ == "__main__":
    # Check if database exists
    if not os.path.exists(db.DB_PATH):
        print(f"❌ Database file '{db.DB_PATH}' not found!")
        print("   Make sure you're running this from the correct directory.")
        sys.exit(1)

    check_database_contents()
