"""
SAT Vocab Master

Vocabulary flashcards with Waterfall Method drilling and SM-2 spaced repetition.
"""

from . import words
from . import progress
from . import scheduler
from . import waterfall
from . import quick_round
from . import db

__version__ = "0.1.0"
__all__ = ["words", "progress", "scheduler", "waterfall", "quick_round", "db"]
