#!/usr/bin/env python3
"""
SAT Vocab Master - Flask Web Application
JSON API for the flashcard front end: Waterfall drilling, spaced-repetition
review and quick rounds, with progress persisted in SQLite.
"""

import os
import sys
import random
import threading
import traceback
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify

# Add the current directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sat_vocab import db
from sat_vocab.progress import UserProgress, progress_summary
from sat_vocab.quick_round import DEFAULT_CARDS, QuickRound
from sat_vocab.scheduler import ReviewState, SpacedSession
from sat_vocab.waterfall import DEFAULT_BATCH_SIZE, WaterfallSession
from sat_vocab.words import WordSource, load_words

# Check for debug mode
DEBUG = os.environ.get("DEBUG", "0") == "1"

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
app.config['WORDS_PATH'] = os.environ.get('SAT_VOCAB_WORDS', 'words.json')


class StudyState:
    """Everything the single local user has open: words, progress and the active sessions."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.source: Optional[WordSource] = None
        self.progress: Optional[UserProgress] = None
        self.review_states: Optional[Dict[str, ReviewState]] = None
        self.waterfall: Optional[WaterfallSession] = None
        self.review: Optional[SpacedSession] = None
        self.quick: Optional[QuickRound] = None

    def reset(self) -> None:
        with self.lock:
            self.source = None
            self.progress = None
            self.review_states = None
            self.waterfall = None
            self.review = None
            self.quick = None

    def ensure_loaded(self) -> None:
        """Load words, progress and review states once per process."""
        if self.source is None:
            self.source = load_words(app.config['WORDS_PATH'])
        if self.progress is None:
            self.progress = db.load_progress()
        if self.review_states is None:
            self.review_states = db.load_review_states()


state = StudyState()


@app.before_request
def initialize_app() -> None:
    """Initialize the database if needed."""
    if not hasattr(app, '_database_initialized'):
        try:
            if not db.is_db_initialized():
                db.init_db()
                print("✅ Database initialized on startup")
        except Exception as e:
            print(f"❌ Database startup check failed: {str(e)}")
        setattr(app, "_database_initialized", True)


def _error(message: str, code: int = 200) -> Any:
    return jsonify({'status': 'error', 'message': message}), code


def _payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def _rng(data: Dict[str, Any]) -> random.Random:
    seed = data.get('seed')
    return random.Random(seed) if seed is not None else random.Random()


def _finish_waterfall(session: WaterfallSession) -> None:
    db.record_session(state.progress, session.stats, "waterfall")


def _finish_review(session: SpacedSession) -> None:
    db.save_review_states(state.review_states)
    db.record_session(state.progress, session.stats, "spaced")


@app.route('/')
def index() -> Any:
    """Dashboard data for the main menu."""
    with state.lock:
        state.ensure_loaded()
        return jsonify({
            'status': 'success',
            'words': len(state.source.words),
            'fallback_words': state.source.fallback,
            'progress': progress_summary(state.progress),
            'due': db.count_due(),
        })


@app.route('/api/words')
def api_words() -> Any:
    """Word list info; warns when the built-in list is in use."""
    with state.lock:
        state.ensure_loaded()
        result: Dict[str, Any] = {
            'status': 'success',
            'count': len(state.source.words),
            'fallback': state.source.fallback,
        }
        if state.source.fallback:
            result['warning'] = 'Could not load the word list; using built-in words.'
        return jsonify(result)


# ── Waterfall ─────────────────────────────────────────────────────

@app.route('/api/waterfall/start', methods=['POST'])
def api_waterfall_start() -> Any:
    data = _payload()
    try:
        batch_size = int(data.get('batch_size', DEFAULT_BATCH_SIZE))
    except (TypeError, ValueError):
        return _error('batch_size must be an integer', 400)
    with state.lock:
        state.ensure_loaded()
        try:
            session = WaterfallSession.start_batch(
                state.source.words,
                batch_size,
                data.get('difficulty', 'all'),
                _rng(data),
                state.progress.mastered_words,
            )
        except ValueError as e:
            return _error(str(e), 400)
        state.waterfall = session
        if session.finished:
            return jsonify({'status': 'no_cards', 'message': 'No words match that difficulty.'})
        return jsonify({'status': 'success', 'session': session.to_dict()})


@app.route('/api/waterfall/card')
def api_waterfall_card() -> Any:
    with state.lock:
        session = state.waterfall
        if session is None:
            return _error('No waterfall session. Start one first.')
        status = 'finished' if session.finished else 'success'
        return jsonify({'status': status, 'session': session.to_dict()})


@app.route('/api/waterfall/respond', methods=['POST'])
def api_waterfall_respond() -> Any:
    data = _payload()
    with state.lock:
        session = state.waterfall
        if session is None:
            return _error('No waterfall session. Start one first.')
        try:
            accepted = session.respond(str(data.get('word', '')), str(data.get('outcome', '')))
        except ValueError as e:
            return _error(str(e), 400)
        if not accepted:
            return _error('That word is not on the current stack.')
        return jsonify({'status': 'success', 'session': session.to_dict()})


@app.route('/api/waterfall/advance', methods=['POST'])
def api_waterfall_advance() -> Any:
    with state.lock:
        session = state.waterfall
        if session is None:
            return _error('No waterfall session. Start one first.')
        if session.finished:
            return jsonify({'status': 'finished', 'session': session.to_dict()})
        session.advance()
        if session.finished:
            _finish_waterfall(session)
            return jsonify({
                'status': 'finished',
                'session': session.to_dict(),
                'stats': session.stats.to_dict(),
                'progress': progress_summary(state.progress),
            })
        return jsonify({'status': 'success', 'session': session.to_dict()})


# ── Spaced repetition ─────────────────────────────────────────────

def _review_payload(session: SpacedSession) -> Dict[str, Any]:
    card = session.current_card()
    return {
        'index': session.current_index,
        'total': len(session.words),
        'remaining': session.remaining,
        'answered': session.answered,
        'finished': session.finished,
        'card': card.to_dict() if card else None,
    }


@app.route('/api/review/start', methods=['POST'])
def api_review_start() -> Any:
    data = _payload()
    with state.lock:
        state.ensure_loaded()
        session = SpacedSession.start(
            state.source.words,
            state.review_states,
            state.progress.mastered_words,
            rng=_rng(data),
        )
        state.review = session
        if session.finished:
            return jsonify({'status': 'no_cards', 'message': 'No words due for review!'})
        return jsonify({'status': 'success', 'session': _review_payload(session)})


@app.route('/api/review/card')
def api_review_card() -> Any:
    with state.lock:
        session = state.review
        if session is None:
            return _error('No review session. Start one first.')
        status = 'finished' if session.finished else 'success'
        return jsonify({'status': status, 'session': _review_payload(session)})


@app.route('/api/review/respond', methods=['POST'])
def api_review_respond() -> Any:
    data = _payload()
    try:
        quality = int(data['quality'])
    except (KeyError, TypeError, ValueError):
        return _error('quality must be an integer from 0 to 5', 400)
    if not 0 <= quality <= 5:
        return _error('quality must be an integer from 0 to 5', 400)
    with state.lock:
        session = state.review
        if session is None:
            return _error('No review session. Start one first.')
        updated = session.respond(str(data.get('word', '')), quality)
        if updated is None:
            return _error('That word is not the current card.')
        return jsonify({
            'status': 'success',
            'interval': updated.interval,
            'ease_factor': round(updated.ease_factor, 2),
            'next_review': updated.next_review_date.isoformat(),
            'mastered': str(data.get('word')) in session.mastered_words,
            'session': _review_payload(session),
        })


@app.route('/api/review/advance', methods=['POST'])
def api_review_advance() -> Any:
    with state.lock:
        session = state.review
        if session is None:
            return _error('No review session. Start one first.')
        if session.finished:
            return jsonify({'status': 'finished', 'session': _review_payload(session)})
        session.advance()
        if session.finished:
            _finish_review(session)
            return jsonify({
                'status': 'finished',
                'session': _review_payload(session),
                'stats': session.stats.to_dict(),
                'progress': progress_summary(state.progress),
            })
        return jsonify({'status': 'success', 'session': _review_payload(session)})


# ── Quick round ───────────────────────────────────────────────────

@app.route('/api/quick/start', methods=['POST'])
def api_quick_start() -> Any:
    data = _payload()
    try:
        cards = int(data.get('cards', DEFAULT_CARDS))
    except (TypeError, ValueError):
        return _error('cards must be an integer', 400)
    with state.lock:
        state.ensure_loaded()
        game = QuickRound.from_words(state.source.words, _rng(data))
        game.start(cards)
        state.quick = game
        return jsonify({'status': 'success', 'round': game.to_dict()})


def _quick_action(action: str) -> Any:
    with state.lock:
        game = state.quick
        if game is None:
            return _error('No quick round. Start one first.')
        was_finished = game.finished
        if action == 'flip':
            game.flip()
        elif action == 'answer':
            if not game.mark_answer(bool(_payload().get('correct'))):
                return _error('Flip the card before marking it.')
        elif action == 'next':
            game.next_card()
        elif action == 'again':
            game.try_again()
        elif action == 'new':
            game.new_round()

        if game.finished:
            if not was_finished:
                db.record_session(state.progress, game.stats, "quick")
            return jsonify({'status': 'finished', 'round': game.to_dict(), 'results': game.results()})
        return jsonify({'status': 'success', 'round': game.to_dict()})


@app.route('/api/quick/card')
def api_quick_card() -> Any:
    return _quick_action('card')


@app.route('/api/quick/flip', methods=['POST'])
def api_quick_flip() -> Any:
    return _quick_action('flip')


@app.route('/api/quick/answer', methods=['POST'])
def api_quick_answer() -> Any:
    return _quick_action('answer')


@app.route('/api/quick/next', methods=['POST'])
def api_quick_next() -> Any:
    return _quick_action('next')


@app.route('/api/quick/again', methods=['POST'])
def api_quick_again() -> Any:
    return _quick_action('again')


@app.route('/api/quick/new', methods=['POST'])
def api_quick_new() -> Any:
    return _quick_action('new')


# ── Progress ──────────────────────────────────────────────────────

@app.route('/api/progress')
def api_progress() -> Any:
    """Progress summary plus the raw accuracy history for charts."""
    try:
        with state.lock:
            state.ensure_loaded()
            return jsonify({
                'status': 'success',
                'summary': progress_summary(state.progress),
                'history': state.progress.accuracy_history,
                'mastered_words': sorted(state.progress.mastered_words),
            })
    except Exception as e:
        if DEBUG:
            traceback.print_exc()
        return jsonify({"error": str(e)}), 500


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='SAT Vocab Master')
    parser.add_argument('--host', default='127.0.0.1', help='Host IP to bind to (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=5000, help='Port to bind to (default: 5000)')
    parser.add_argument('--words', help='Path to the words JSON file')
    parser.add_argument('--debug', action='store_true', help='Enable debug mode')

    args = parser.parse_args()

    if args.debug:
        DEBUG = True
    if args.words:
        app.config['WORDS_PATH'] = args.words

    # Initialize database
    try:
        if not db.is_db_initialized():
            db.init_db()
            print("✅ Database initialized")
    except Exception as e:
        print(f"❌ Database initialization failed: {str(e)}")

    print(f"🚀 Starting server on http://{args.host}:{args.port}")
    app.run(debug=DEBUG, host=args.host, port=args.port)
