import datetime
import random
from typing import Optional

import click

from . import db
from .progress import progress_summary
from .quick_round import DEFAULT_CARDS, QuickRound
from .scheduler import SpacedSession
from .waterfall import DEFAULT_BATCH_SIZE, WaterfallSession
from .words import DIFFICULTY_FILTERS, WordRecord, WordSource, load_words

WATERFALL_KEYS = {"k": "know", "s": "struggled", "u": "unknown"}


def _load(words_path: Optional[str]) -> WordSource:
    source = load_words(words_path)
    if source.fallback:
        click.echo("⚠️  Could not load the word list, using the built-in words instead.")
    return source


def _show_front(card: WordRecord) -> None:
    click.echo("")
    click.echo(click.style(card.word, bold=True) + f"  ({card.part_of_speech})")


def _show_back(card: WordRecord) -> None:
    click.echo(f"  Definition: {card.definition}")
    click.echo(f"  Example:    {card.example}")
    if card.synonyms:
        click.echo(f"  Synonyms:   {', '.join(card.synonyms)}")
    click.echo(f"  Memory aid: {card.memory_aid}")


@click.group()
@click.option("--words", "words_path", default=None, help="Path to the words JSON file")
@click.pass_context
def cli(ctx: click.Context, words_path: Optional[str]) -> None:
    """SAT Vocab Master flashcards."""
    ctx.ensure_object(dict)
    ctx.obj["words_path"] = words_path
    if not db.is_db_initialized():
        db.init_db()


@cli.command("init-db")
def init_db() -> None:
    """Initialize the progress database."""
    db.init_db()
    click.echo("Database initialized.")


@cli.command("words")
@click.pass_context
def list_words(ctx: click.Context) -> None:
    """Show how many words are available per difficulty."""
    source = _load(ctx.obj["words_path"])
    click.echo(f"{len(source.words)} words loaded.")
    for tier in ("easy", "medium", "hard"):
        count = sum(1 for w in source.words if w.difficulty == tier)
        click.echo(f"  {tier}: {count}")


@cli.command("waterfall")
@click.option("--batch-size", default=DEFAULT_BATCH_SIZE, show_default=True, help="Words per batch")
@click.option("--difficulty", type=click.Choice(list(DIFFICULTY_FILTERS)), default="all", show_default=True)
@click.option("--seed", type=int, default=None, help="Random seed for the batch")
@click.pass_context
def waterfall(ctx: click.Context, batch_size: int, difficulty: str, seed: Optional[int]) -> None:
    """Drill a batch of words with the Waterfall Method."""
    source = _load(ctx.obj["words_path"])
    progress = db.load_progress()
    session = WaterfallSession.start_batch(
        source.words, batch_size, difficulty, random.Random(seed), progress.mastered_words
    )
    if session.finished:
        click.echo("No words match that difficulty.")
        return

    click.echo(f"Batch of {session.batch_size} words. Answer k = know, s = struggled, u = unknown.")
    while not session.finished:
        card = session.current_card()
        if card is None:
            session.advance()
            continue
        click.echo(f"\n[{session.active_stack_name} · pass {session.pass_number}/{session.max_passes}]")
        _show_front(card)
        click.prompt("Press Enter to flip", default="", show_default=False)
        _show_back(card)
        answer = click.prompt("Did you know it?", type=click.Choice(list(WATERFALL_KEYS)))
        session.respond(card.word, WATERFALL_KEYS[answer])
        session.advance()

    db.record_session(progress, session.stats, "waterfall")
    click.echo(f"\nBatch complete: {session.stats.correct}/{session.stats.words_studied} known.")


@cli.command("review")
@click.option("--seed", type=int, default=None, help="Random seed for the review order")
@click.pass_context
def review(ctx: click.Context, seed: Optional[int]) -> None:
    """Review the words that are due (SM-2 spaced repetition)."""
    source = _load(ctx.obj["words_path"])
    progress = db.load_progress()
    states = db.load_review_states()
    session = SpacedSession.start(source.words, states, progress.mastered_words, rng=random.Random(seed))
    if session.finished:
        click.echo("Nothing to review right now.")
        return

    click.echo(f"{len(session.words)} words due. Grade yourself 0 (blackout) to 5 (perfect).")
    while not session.finished:
        card = session.current_card()
        _show_front(card)
        click.prompt("Press Enter to flip", default="", show_default=False)
        _show_back(card)
        quality = click.prompt("Quality", type=click.IntRange(0, 5))
        state = session.respond(card.word, quality)
        if state is not None:
            click.echo(f"  Next review in {state.interval} day(s).")
        session.advance()

    db.save_review_states(states)
    db.record_session(progress, session.stats, "spaced")
    click.echo(f"\nReview complete: {session.stats.correct}/{session.stats.words_studied} recalled.")


@cli.command("quick")
@click.option("--cards", default=DEFAULT_CARDS, show_default=True, help="Cards in the round")
@click.option("--seed", type=int, default=None, help="Random seed for the round")
@click.pass_context
def quick(ctx: click.Context, cards: int, seed: Optional[int]) -> None:
    """Play a quick flashcard round."""
    source = _load(ctx.obj["words_path"])
    game = QuickRound.from_words(source.words, random.Random(seed))
    game.start(cards)
    while not game.finished:
        card = game.current_card()
        click.echo(f"\nCard {game.current_index + 1} of {len(game.cards)}  ·  Score: {game.score}")
        _show_front(card)
        click.prompt("Press Enter to flip", default="", show_default=False)
        game.flip()
        _show_back(card)
        game.mark_answer(click.confirm("Did you get it right?", default=True))
        game.next_card()

    results = game.results()
    progress = db.load_progress()
    db.record_session(progress, game.stats, "quick")
    click.echo(f"\n{results['score']} out of {results['total']} ({results['percentage']}%)")
    click.echo(results["message"])


@cli.command("progress")
def show_progress() -> None:
    """Show mastered words, streak and accuracy."""
    progress = db.load_progress()
    summary = progress_summary(progress)
    click.echo(f"Mastered words: {summary['mastered']}")
    click.echo(f"Study streak:   {summary['study_streak']} day(s)")
    click.echo(f"Last studied:   {summary['last_study_date'] or 'never'}")
    click.echo(f"Sessions:       {summary['sessions']}")
    click.echo(f"Accuracy:       {summary['accuracy']}%")
    click.echo(f"Due for review: {db.count_due(datetime.datetime.now(datetime.UTC))}")


if __name__ == "__main__":
    cli()
