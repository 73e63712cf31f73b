"""CLI for the driftoff drowsiness engine."""

import asyncio
import json
from datetime import date, datetime
from pathlib import Path

import click

DEFAULT_DATA_DIR = Path.home() / ".driftoff"
SESSIONS_FILE = "sessions.txt"
FEEDBACK_FILE = "feedback.json"


def _data_path(ctx: click.Context, name: str) -> Path:
    return ctx.obj["data_dir"] / name


def _settings(path: str | None):
    from pydantic import ValidationError

    from driftoff.settings import load_settings

    try:
        return load_settings(path)
    except ValidationError as e:
        raise click.ClickException(f"Invalid settings:\n{e}")


@click.group()
@click.option("--data-dir", type=click.Path(file_okay=False), default=str(DEFAULT_DATA_DIR),
              help="Directory holding sessions and feedback state.")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging (includes score breakdowns).")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines.")
@click.pass_context
def main(ctx: click.Context, data_dir: str, verbose: bool, json_logs: bool) -> None:
    """driftoff — drowsiness scoring and sleep-state management."""
    from driftoff.log import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "WARNING")
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = Path(data_dir)


@main.command()
@click.option("--lux", default=100.0, help="Ambient light in lux.")
@click.option("--stillness", default=0.5, help="Stillness 0-1 (1 = motionless).")
@click.option("--heart-rate", default=60.0, help="Heart rate in BPM.")
@click.option("--session", "session_min", default=0.0, help="Minutes of phone use this session.")
@click.option("--screen-off", default=0.0, help="Minutes since the screen went off.")
@click.option("--noise", default=None, type=float, help="Ambient noise in dB (enables audio weights).")
@click.option("--at", "at_time", default=None, help="Clock time HH:MM (default: now).")
@click.option("--settings", "settings_path", default=None, type=click.Path(exists=True),
              help="JSON settings file.")
@click.pass_context
def score(
    ctx: click.Context,
    lux: float,
    stillness: float,
    heart_rate: float,
    session_min: float,
    screen_off: float,
    noise: float | None,
    at_time: str | None,
    settings_path: str | None,
) -> None:
    """Score a single feature set."""
    from driftoff.analytics.feedback import FeedbackStore
    from driftoff.scoring.calculator import apply_multiplier
    from driftoff.scoring.features import FeatureSnapshot
    from driftoff.scoring.model import HeuristicScoreModel
    from driftoff.scoring.smoothing import candidate_state
    from driftoff.settings import time_proximity

    settings = _settings(settings_path)
    now = datetime.now()
    if at_time is not None:
        try:
            clock = datetime.strptime(at_time, "%H:%M").time()
        except ValueError:
            raise click.BadParameter("expected HH:MM", param_hint="--at")
        now = datetime.combine(now.date(), clock)

    snapshot = FeatureSnapshot(
        ambient_light_lux=lux,
        stillness=stillness,
        time_proximity=time_proximity(settings, now),
        heart_rate_bpm=heart_rate,
        session_minutes=session_min,
        screen_off_minutes=screen_off,
        ambient_noise_db=noise,
        timestamp=now,
    )
    model = HeuristicScoreModel()
    multiplier = FeedbackStore(_data_path(ctx, FEEDBACK_FILE)).adaptive_multiplier()
    raw = model.predict(snapshot)
    adjusted = apply_multiplier(raw, multiplier)
    state = candidate_state(adjusted, settings.drowsy_threshold, settings.sleeping_threshold)

    click.echo(json.dumps({
        "raw_score": round(raw, 2),
        "score": round(adjusted, 2),
        "multiplier": multiplier,
        "state": state.value,
        "contributions": {k: round(v, 4) for k, v in model.breakdown(snapshot).items()},
    }, indent=2))


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--settings", "settings_path", default=None, type=click.Path(exists=True),
              help="JSON settings file.")
@click.option("--save", is_flag=True, help="Persist replayed sessions to the data dir.")
@click.option("--ticks", "show_ticks", is_flag=True, help="Print every tick.")
@click.pass_context
def replay(ctx: click.Context, file: str, settings_path: str | None, save: bool, show_ticks: bool) -> None:
    """Run the monitoring controller over a JSONL frame file."""
    from driftoff.analytics.store import AnalyticsStore
    from driftoff.analytics.feedback import FeedbackStore
    from driftoff.providers.replay import load_frames, replay_frames

    settings = _settings(settings_path)
    frames = load_frames(file)
    if not frames:
        raise click.ClickException(f"No frames in {file}")

    store = AnalyticsStore(_data_path(ctx, SESSIONS_FILE)) if save else None
    feedback = FeedbackStore(_data_path(ctx, FEEDBACK_FILE))
    report = replay_frames(frames, settings, store=store, multiplier=feedback.adaptive_multiplier)

    click.echo(f"Replayed {len(report.ticks)} frame(s) from {Path(file).name}")
    if show_ticks:
        for t in report.ticks:
            click.echo(
                f"  {t.timestamp:%H:%M:%S}  {t.score:5.1f}  {t.state.value:<16} {t.mode.value}"
            )
    click.echo(f"Hibernated: {'yes' if report.hibernated else 'no'}")
    click.echo(f"Device effects: {len(report.device_history)}")
    if report.sessions:
        click.echo(f"\n{len(report.sessions)} session(s) kept:")
        for s in report.sessions:
            click.echo(f"  {s!r}")
    else:
        click.echo("No session met the minimum sleep duration.")


@main.command()
@click.option("--days", "-d", default=7, help="Look-back window in days.")
@click.pass_context
def summary(ctx: click.Context, days: int) -> None:
    """Print the sleep analytics summary."""
    from driftoff.analytics.store import AnalyticsStore

    store = AnalyticsStore(_data_path(ctx, SESSIONS_FILE))
    click.echo(store.analytics_summary(days).to_json())


@main.command()
@click.option("--days", "-d", default=7, help="Look-back window in days.")
@click.pass_context
def sessions(ctx: click.Context, days: int) -> None:
    """List recent sleep sessions, newest first."""
    from driftoff.analytics.store import AnalyticsStore

    recent = AnalyticsStore(_data_path(ctx, SESSIONS_FILE)).recent_sessions(days)
    if not recent:
        click.echo("No sessions recorded.")
        return
    for s in recent:
        click.echo(
            f"{s.date}  slept {s.total_sleep_min:>4} min  "
            f"to sleep {s.minutes_to_sleep:>3} min  "
            f"disturbances {s.disturbances}  "
            f"avg {s.average_score:5.1f}  peak {s.peak_score:5.1f}"
            + ("  [hibernated]" if s.hibernation_activated else "")
        )


@main.command()
@click.argument("rating", type=click.IntRange(1, 5), required=False)
@click.option("--feeling", type=click.Choice(["terrible", "poor", "okay", "good", "great"]),
              default="okay", help="How you felt on waking.")
@click.option("--notes", default=None, help="Free-form notes.")
@click.option("--reset", is_flag=True, help="Reset the multiplier to 1.0 instead.")
@click.pass_context
def feedback(ctx: click.Context, rating: int | None, feeling: str, notes: str | None, reset: bool) -> None:
    """Rate last night (1-5) to tune the adaptive multiplier."""
    from driftoff.analytics.feedback import FeedbackStore, UserFeedback, WakeUpFeeling

    store = FeedbackStore(_data_path(ctx, FEEDBACK_FILE))
    if reset:
        store.reset_multiplier()
        click.echo(f"Multiplier reset to {store.adaptive_multiplier():.2f}")
        return
    if rating is None:
        raise click.UsageError("RATING is required unless --reset is given.")
    if store.has_feedback_today():
        click.echo("Feedback already given today; applying anyway.")

    multiplier = store.submit_feedback(
        UserFeedback(date=date.today(), rating=rating, feeling=WakeUpFeeling(feeling), notes=notes)
    )
    click.echo(f"Adaptive multiplier: {multiplier:.2f}")


@main.command("heart-rate")
@click.argument("address")
@click.option("--duration", "-d", default=None, type=float, help="Stop after N seconds.")
@click.option("--interval", "-i", default=5.0, help="Seconds between printed readings.")
def heart_rate_cmd(address: str, duration: float | None, interval: float) -> None:
    """Stream BPM from a standard BLE heart-rate device."""
    from driftoff.providers.heart_rate import BleHeartRateMonitor

    monitor = BleHeartRateMonitor(address)

    async def _stream() -> None:
        stop = asyncio.Event()
        task = asyncio.create_task(monitor.run(stop))
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            while not task.done():
                await asyncio.sleep(interval)
                bpm = monitor.latest_bpm()
                click.echo(f"[{datetime.now():%H:%M:%S}] HR: {'--' if bpm is None else f'{bpm:.0f}'} bpm")
                if duration is not None and loop.time() - started >= duration:
                    break
        finally:
            stop.set()
            await task

    try:
        asyncio.run(_stream())
    except KeyboardInterrupt:
        click.echo("\nStopped.")


if __name__ == "__main__":
    main()
