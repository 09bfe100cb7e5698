"""CLI for the vitalscore health-signal toolkit."""

import click


def _load(file: str):
    from vitalscore.inputs import load_inputs

    try:
        return load_inputs(file)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Minimum level for log output on stderr.",
)
@click.option("--log-file", default=None, help="Also write logs to this (rotating) file.")
def main(log_level: str, log_file: str | None) -> None:
    """vitalscore: recovery, strain, sleep and illness signals from daily health data."""
    from vitalscore.log import setup_logger

    setup_logger(level=log_level, log_file=log_file)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, help="Write the summary JSON to this file.")
def score(file: str, output: str | None) -> None:
    """Run every engine and print the daily summary as JSON."""
    from vitalscore.analytics.pipeline import run_daily

    summary = run_daily(_load(file))
    text = summary.to_json()
    if output:
        with open(output, "w") as f:
            f.write(text + "\n")
        click.echo(f"Wrote {summary!r} to {output}")
    else:
        click.echo(text)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def load(file: str) -> None:
    """Show per-workout load estimates and the resulting ATL/CTL/TSB."""
    from vitalscore.analytics.load import estimate_load
    from vitalscore.analytics.pipeline import daily_loads, training_states
    from vitalscore.analytics.strain import strength_workout_load

    inputs = _load(file)
    if not inputs.workouts and inputs.strength is None and inputs.training_load is None:
        click.echo("No workouts.")
        return

    click.echo(f"{'date':<12} {'type':<14} {'method':<11} {'load':>7}")
    for w in sorted(inputs.workouts, key=lambda r: (r.timestamp is None, r.timestamp)):
        est = estimate_load(w, inputs.user)
        when = w.timestamp.date().isoformat() if w.timestamp else inputs.day.isoformat()
        click.echo(f"{when:<12} {w.activity_type:<14} {est.method:<11} {est.value:>7.1f}")
    if inputs.strength is not None:
        s = inputs.strength
        strength_only = strength_workout_load(s.duration_min, s.rpe, s.muscle_groups, s.eccentric)
        click.echo(
            f"{inputs.day.isoformat():<12} {'strength':<14} {'rpe':<11} {strength_only:>7.1f}"
        )

    _, state = training_states(inputs, daily_loads(inputs))
    if state is not None:
        click.echo(f"\nATL {state.atl:.1f}  CTL {state.ctl:.1f}  TSB {state.tsb:+.1f}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def illness(file: str) -> None:
    """Check the last 7 days for illness/body-stress signals."""
    from vitalscore.analytics.illness import detect_illness
    from vitalscore.analytics.pipeline import build_illness_window

    inputs = _load(file)
    indicator = detect_illness(build_illness_window(inputs), inputs.illness_thresholds)
    if indicator is None:
        click.echo("No illness indicator.")
        return

    click.echo(
        f"Severity: {indicator.severity.value}  "
        f"(confidence {indicator.confidence:.0%})"
    )
    for s in indicator.signals:
        click.echo(
            f"  {s.type.value:<18} {s.value:>7.1f} vs {s.baseline:>7.1f}  "
            f"{s.deviation:+.1f}%  ({s.consecutive_days}d)"
        )
    click.echo(indicator.recommendation)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def circadian(file: str) -> None:
    """Summarize bedtime, wake time and schedule consistency."""
    from vitalscore.analytics.circadian import analyze_circadian, format_hour, sleep_consistency
    from vitalscore.analytics.pipeline import end_of_day, past_training_times

    inputs = _load(file)
    if not inputs.sleep_sessions:
        click.echo("No sleep sessions.")
        return

    now = end_of_day(inputs)
    data = analyze_circadian(
        inputs.sleep_sessions,
        now=now,
        training_times=past_training_times(inputs),
    )
    if data is None:
        click.echo("No past sleep sessions.")
        return

    click.echo(f"Average bedtime:   {format_hour(data.avg_bedtime)}")
    click.echo(f"Average wake time: {format_hour(data.avg_wake_time)}")
    click.echo(f"Bedtime SD:        {data.bedtime_variance:.0f} min")
    if data.avg_training_time is not None:
        click.echo(f"Average training:  {format_hour(data.avg_training_time)}")
    consistency = sleep_consistency([s for s in inputs.sleep_sessions if s.wake_time < now])
    if consistency is not None:
        click.echo(f"Consistency:       {consistency.score} ({consistency.band.value})")


if __name__ == "__main__":
    main()
