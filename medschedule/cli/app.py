"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from pendulum import DateTime
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config import AppConfig
from ..domain.exceptions import MedScheduleError
from ..domain.models import DoseStatus, ScheduleEvent, ScheduleRequest, TimingPlan, weekday_name
from ..services.schedule_service import MedicationScheduleService

app = typer.Typer(
    name="medschedule",
    help="Plan medication doses around a real first dose, avoiding overnight hours",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml if present"),
]
FirstDoseOption = Annotated[
    Optional[str],
    typer.Option("--first-dose", "-f", help="First dose time (YYYY-MM-DD HH:mm). Defaults to now"),
]
DosesOption = Annotated[Optional[int], typer.Option("--doses", "-n", help="Doses per day")]
PlanOption = Annotated[Optional[str], typer.Option("--plan", "-p", help="Timing plan: plan1, plan2 or custom")]
CustomTimesOption = Annotated[
    Optional[List[str]],
    typer.Option("--time", "-t", help="Custom dose time HH:MM (repeat for each dose)"),
]
DaysOption = Annotated[Optional[int], typer.Option("--days", "-d", help="Treatment days")]
TimezoneOption = Annotated[Optional[str], typer.Option("--tz", help="IANA timezone. Defaults to config")]
MedicationOption = Annotated[
    Optional[str],
    typer.Option("--medication", "-m", help="Use a medication profile from the config file"),
]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
):
    """
    medschedule - medication dose scheduling for caregivers.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def _parse_instant(value: Optional[str], tz: str, label: str) -> DateTime:
    """Parse a local date-time string in ``tz``; None means now."""
    if not value:
        return pendulum.now(tz)
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        console.print(f"[red]無法解析{label}「{value}」: {e}[/red]")
        raise typer.Exit(1)

    if not isinstance(parsed, DateTime):
        console.print(f"[red]{label}「{value}」不是日期時間[/red]")
        raise typer.Exit(1)
    return parsed


def _build_request(
    *,
    config: AppConfig,
    first_dose: Optional[str],
    doses: Optional[int],
    plan: Optional[str],
    custom_times: Optional[List[str]],
    days: Optional[int],
    tz: Optional[str],
    medication: Optional[str],
) -> ScheduleRequest:
    """
    Merge CLI options, an optional medication profile and config defaults.

    Explicit options win over the profile, the profile wins over defaults.
    """
    profile = config.resolve_medication(medication) if medication else None
    timezone = tz or config.timezone

    if custom_times:
        timing_plan = TimingPlan.CUSTOM
    elif plan:
        timing_plan = TimingPlan.from_value(plan)
    elif profile:
        timing_plan = profile.timing_plan
    else:
        timing_plan = config.defaults.timing_plan

    if custom_times:
        times = list(custom_times)
    elif profile and timing_plan is TimingPlan.CUSTOM:
        times = profile.custom_times
    else:
        times = None

    if doses is not None:
        doses_per_day = doses
    elif times:
        doses_per_day = len(times)
    elif profile:
        doses_per_day = profile.doses_per_day
    else:
        doses_per_day = config.defaults.doses_per_day

    if days is not None:
        treatment_days = days
    elif profile and profile.treatment_days:
        treatment_days = profile.treatment_days
    else:
        treatment_days = config.defaults.treatment_days

    return ScheduleRequest(
        anchor_date_time=_parse_instant(first_dose, timezone, "首次用藥時間"),
        doses_per_day=doses_per_day,
        treatment_days=treatment_days,
        timing_plan=timing_plan,
        custom_times=times,
        timezone=timezone,
        medication_name=profile.name if profile else None,
    )


def _events_table(events: List[ScheduleEvent], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("第幾天", justify="right")
    table.add_column("日期")
    table.add_column("時間", style="bold yellow")
    table.add_column("標籤")

    for event in events:
        marker = "🔵 " if event.is_first_dose else ""
        table.add_row(
            str(event.day_index),
            f"{event.date_time.format('YYYY-MM-DD')} {weekday_name(event.date_time)}",
            event.time,
            f"{marker}{event.label}",
        )
    return table


@app.command()
def schedule(
    config_file: ConfigOption = None,
    first_dose: FirstDoseOption = None,
    doses: DosesOption = None,
    plan: PlanOption = None,
    custom_times: CustomTimesOption = None,
    days: DaysOption = None,
    tz: TimezoneOption = None,
    medication: MedicationOption = None,
    interval: Annotated[bool, typer.Option("--interval", help="Strict fixed interval (antibiotics) instead of meal slots")] = False,
):
    """
    Generate the full dose schedule and its recurring trigger.

    Examples:

        # Three doses a day for three days, first dose taken at 21:04
        medschedule schedule --first-dose "2026-10-18 21:04" --doses 3 --days 3

        # Custom times
        medschedule schedule -t 07:30 -t 19:30 --days 5

        # Saved medication profile
        medschedule schedule --medication 感冒藥
    """
    try:
        config = AppConfig.load_or_default(config_file)
        service = MedicationScheduleService(timezone=tz or config.timezone)
        request = _build_request(
            config=config,
            first_dose=first_dose,
            doses=doses,
            plan=plan,
            custom_times=custom_times,
            days=days,
            tz=tz,
            medication=medication,
        )

        if interval:
            events = service.generate_interval_schedule(
                anchor_date_time=request.anchor_date_time,
                doses_per_day=request.doses_per_day,
                treatment_days=request.treatment_days,
                timezone=request.timezone,
                medication_name=request.medication_name,
            )
            console.print()
            console.print(_events_table(events, f"固定間隔排程 ({len(events)} 次)"))
            console.print()
            return

        reminder = service.plan_reminder(request)

        console.print()
        console.print(_events_table(list(reminder.events), f"用藥排程 ({reminder.total_doses} 次)"))
        console.print(Panel.fit(
            f"[bold]時段:[/bold] {', '.join(reminder.trigger.times)}\n"
            f"[bold]Cron:[/bold] {reminder.trigger}\n"
            f"[bold]時區:[/bold] {reminder.timezone}\n"
            f"[bold]期間:[/bold] {reminder.start_date.format('YYYY-MM-DD')} - "
            f"{reminder.end_date.format('YYYY-MM-DD')}",
            title="提醒設定"
        ))
        console.print()

    except (MedScheduleError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]錯誤:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def preview(
    config_file: ConfigOption = None,
    first_dose: FirstDoseOption = None,
    doses: DosesOption = None,
    plan: PlanOption = None,
    custom_times: CustomTimesOption = None,
    days: DaysOption = None,
    tz: TimezoneOption = None,
    medication: Annotated[
        Optional[List[str]],
        typer.Option("--medication", "-m", help="Medication profile(s) from the config file; repeat to merge"),
    ] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Reference time for passed/upcoming (YYYY-MM-DD HH:mm)")] = None,
    horizon: Annotated[Optional[int], typer.Option("--horizon", help="Number of days to show")] = None,
    hide_passed: Annotated[bool, typer.Option("--hide-passed", help="Leave out doses already passed")] = False,
):
    """
    Show the upcoming days of a schedule with passed/upcoming status.
    """
    try:
        config = AppConfig.load_or_default(config_file)
        timezone = tz or config.timezone
        service = MedicationScheduleService(timezone=timezone)

        names = medication or [None]
        requests = [
            _build_request(
                config=config,
                first_dose=first_dose,
                doses=doses,
                plan=plan,
                custom_times=custom_times,
                days=days,
                tz=tz,
                medication=name,
            )
            for name in names
        ]

        reference = _parse_instant(now, timezone, "參考時間") if now else None
        preview_days = service.preview_medications(
            requests,
            reference_instant=reference,
            horizon_days=horizon or config.defaults.preview_days,
            include_passed=not hide_passed,
        )

        console.print()
        if not preview_days:
            console.print("[yellow]⚠ 預覽範圍內沒有用藥時段。[/yellow]\n")
            return

        for day in preview_days:
            table = Table(
                title=f"{day.date.format('YYYY-MM-DD')} {day.day_of_week}",
                show_header=True,
                header_style="bold cyan"
            )
            table.add_column("時間", style="bold yellow")
            table.add_column("藥物")
            table.add_column("標籤")
            table.add_column("狀態")

            for entry in day.entries:
                status = (
                    "[dim]已過[/dim]" if entry.status is DoseStatus.PASSED
                    else "[green]待服用[/green]"
                )
                table.add_row(entry.time, entry.medication_name or "-", entry.label, status)

            console.print(table)
        console.print()

    except (MedScheduleError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]錯誤:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def trigger(
    config_file: ConfigOption = None,
    doses: DosesOption = None,
    plan: PlanOption = None,
    custom_times: CustomTimesOption = None,
):
    """
    Print the recurring trigger expression for a plan.
    """
    try:
        config = AppConfig.load_or_default(config_file)
        service = MedicationScheduleService(timezone=config.timezone)

        timing_plan = TimingPlan.CUSTOM if custom_times else (plan or config.defaults.timing_plan)
        if doses is None:
            doses = len(custom_times) if custom_times else config.defaults.doses_per_day

        slot_plan = service.resolve_slot_plan(
            doses_per_day=doses,
            timing_plan=timing_plan,
            custom_times=custom_times,
        )
        expression = service.synthesize_trigger(slot_plan)

        console.print()
        for line in expression.cron_lines:
            console.print(f"  [bold]{line}[/bold]")
        console.print(f"\n  時段: {', '.join(expression.times)}\n")

    except (MedScheduleError, ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]錯誤:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def extract(
    text: Annotated[str, typer.Argument(help="Free text, e.g. '早上9點和晚上9點'")],
):
    """
    Extract dose times (HH:MM) from a free-text phrase.
    """
    times = MedicationScheduleService().extract_times_from_text(text)

    if not times:
        console.print("[yellow]⚠ 找不到時間，請改用其他方式輸入。[/yellow]")
        raise typer.Exit(1)

    console.print(", ".join(times))


@app.command()
def list_medications(
    config_file: ConfigOption = None,
):
    """
    List all configured medication profiles.
    """
    try:
        config = AppConfig.load_or_default(config_file)

        if not config.medications:
            console.print("[yellow]設定檔中沒有藥物。[/yellow]")
            return

        table = Table(
            title="已設定的藥物",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("名稱", style="bold yellow")
        table.add_column("每日次數", justify="right")
        table.add_column("方案")
        table.add_column("自訂時間", style="dim")

        for medication in config.medications:
            table.add_row(
                medication.name,
                str(medication.doses_per_day),
                medication.timing_plan.value,
                ", ".join(medication.custom_times or []) or "-",
            )

        console.print()
        console.print(table)
        console.print()

    except (ValueError, FileNotFoundError) as e:
        console.print(f"[bold red]錯誤:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]medschedule[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
