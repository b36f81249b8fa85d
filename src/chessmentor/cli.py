"""CLI entry point for inspecting and maintaining saved ChessMentor state."""

import json
import logging

import click


def _engine(ctx: click.Context):
    from chessmentor.engine.mentor import MentorEngine
    from chessmentor.state.store import StateStore

    settings = ctx.obj["settings"]
    store = StateStore(db_path=settings.state_path)
    return MentorEngine(settings=settings, store=store)


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="Path to config.yaml (defaults to ~/.chessmentor/config.yaml)")
@click.option("--verbose", "-v", is_flag=True, help="Log engine activity to stderr")
@click.pass_context
def main(ctx: click.Context, config_path, verbose: bool) -> None:
    """ChessMentor: adaptive difficulty and coaching state tools."""
    from pathlib import Path

    from chessmentor.config.settings import Settings

    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["settings"] = Settings.load(Path(config_path) if config_path else None)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show difficulty, metrics and the active coaching strategy."""
    engine = _engine(ctx)
    m = engine.metrics
    profile = engine.opponent_profile()
    click.echo(f"Difficulty:      {engine.current_difficulty:.1f} "
               f"(predicted {engine.predicted_difficulty():.1f})")
    click.echo(f"Opponent:        {profile.name}, depth {profile.search_depth}")
    click.echo(f"Adaptation:      {'on' if engine.controller.adaptation_enabled else 'off'}")
    click.echo(f"Games recorded:  {m.games_played}")
    click.echo(f"Win rate:        {m.win_rate_pct:.1f}%")
    click.echo(f"Streak:          {m.current_streak} (best {m.best_streak})")
    click.echo(f"Accuracy:        {m.average_accuracy_pct:.1f}%")
    click.echo(f"Trend / skill:   {m.improvement_trend.value} / {m.skill_level.value}")
    click.echo(f"Strategy:        {engine.strategy.name}")


@main.command()
@click.option("--limit", default=10, show_default=True, help="Number of adjustments to show")
@click.pass_context
def history(ctx: click.Context, limit: int) -> None:
    """List the most recent difficulty adjustments."""
    engine = _engine(ctx)
    adjustments = engine.controller.adjustments[-limit:]
    if not adjustments:
        click.echo("No difficulty adjustments recorded.")
        return
    for a in adjustments:
        click.echo(f"  {a.old_difficulty:.1f} -> {a.new_difficulty:.1f}  "
                   f"[{a.trigger_event.value}] {a.reason}")


@main.command()
@click.option("--mode", type=click.Choice(["pvp", "campaign"]), default="pvp", show_default=True)
@click.option("--top", default=10, show_default=True)
@click.pass_context
def leaderboard(ctx: click.Context, mode: str, top: int) -> None:
    """Show the ranked leaderboard."""
    engine = _engine(ctx)
    for entry in engine.leaderboard(mode)[:top]:
        marker = "*" if entry.is_current_player else " "
        click.echo(f"{marker}{entry.rank:>3}. {entry.record.player_name:<20} {entry.score}")


@main.command()
@click.argument("outcome", type=click.Choice(["win", "loss", "draw"]))
@click.option("--length-ms", type=float, default=600000, show_default=True)
@click.option("--accuracy", type=float, default=50.0, show_default=True)
@click.option("--opponent-rating", type=float, default=None)
@click.pass_context
def record(ctx: click.Context, outcome: str, length_ms: float, accuracy: float,
           opponent_rating) -> None:
    """Record a finished game by hand."""
    engine = _engine(ctx)
    sample = engine.on_game_completed(outcome, length_ms, accuracy,
                                      opponent_rating=opponent_rating)
    click.echo(f"Recorded {outcome}: score {sample.performance_score}, "
               f"difficulty now {engine.current_difficulty:.1f}")


@main.command()
@click.option("--ratings", is_flag=True, help="Also reset ratings and leaderboards")
@click.confirmation_option(prompt="Discard the saved difficulty progression?")
@click.pass_context
def reset(ctx: click.Context, ratings: bool) -> None:
    """Reset the saved progression."""
    engine = _engine(ctx)
    engine.reset()
    if ratings:
        engine.reset_ratings()
    click.echo("State reset.")


@main.command()
@click.pass_context
def export(ctx: click.Context) -> None:
    """Print the saved state as JSON."""
    engine = _engine(ctx)
    click.echo(json.dumps(engine.export_state(), indent=2))
