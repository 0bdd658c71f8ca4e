#!/usr/bin/env python3
"""
CalAI CLI - Command-line interface for the CalAI calendar assistant

Usage:
    calai classify TEXT                         - Classify an utterance (event/task/query/...)
    calai analyze EVENTS_FILE                   - Analyze and narrate a day's schedule
    calai next EVENTS_FILE                      - Describe the next upcoming event
    calai brief morning EVENTS_FILE             - Generate the morning briefing
    calai tasks list [EVENT_ID]                 - Show event tasks
    calai tasks suggest EVENTS_FILE EVENT_ID    - Suggest template tasks for an event
    calai tasks accept EVENTS_FILE EVENT_ID     - Attach the suggested tasks
    calai tasks add EVENT_ID TITLE              - Add a custom task
    calai tasks toggle EVENT_ID TASK_ID         - Toggle a task's completion
    calai tasks delete EVENT_ID [TASK_ID]       - Delete a task or an event's whole list
    calai followup EVENTS_FILE EVENT_ID         - Summarize a finished meeting
    calai version                               - Show version

EVENTS_FILE is a JSON list of raw calendar payloads, each tagged with
"source": "google", "outlook" or "ios".

Options:
    --json                                      - Output in JSON format for scripting
    --config PATH                               - YAML config file (default: ./config.yaml)
    --help                                      - Show help message
"""

import json
import logging
from datetime import datetime, date, time, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from rich import box

from calai import __version__
from calai.config import CalAIConfig, ConfigError, load_config
from calai.integrations import UnifiedEvent, load_events_file
from calai.memory import EventTaskStore, FollowUpStore, BriefingSettingsStore
from calai.tools import (
    IntentType,
    ScheduleAnalyzer,
    NarrativeBuilder,
    VoiceResponseGenerator,
    EventTask,
    EventTaskManager,
    TaskCategory,
    TaskGenerationSettings,
    TaskPriority,
    TaskTiming,
    MorningBriefingService,
    MorningBriefingSettings,
    WeatherData,
    PostMeetingService,
    create_intent_classifier,
    format_time,
)

# Initialize Rich console
console = Console()

INTENT_COLORS = {
    IntentType.EVENT: "cyan",
    IntentType.TASK: "green",
    IntentType.QUERY: "blue",
    IntentType.UPDATE: "yellow",
    IntentType.DELETE: "red",
}

CHARACTER_COLORS = {
    "free": "green",
    "light": "green",
    "moderate": "blue",
    "busy": "yellow",
    "packed": "red",
}

PRIORITY_STYLES = {
    "high": "bold red",
    "medium": "yellow",
    "low": "dim",
}

DATE_FORMATS = ["%Y-%m-%d"]
DATETIME_FORMATS = ["%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S"]


# =============================================================================
# LOGGING
# =============================================================================

def setup_logging(level: str = "INFO"):
    """Configure logging for the CLI."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler (stderr, so --json output stays parseable)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)
    console_handler.set_name("calai-console")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        if handler.get_name() == "calai-console":
            root_logger.removeHandler(handler)
    root_logger.addHandler(console_handler)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def output_json(data: Dict[str, Any]) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=2, default=str))


def get_config(ctx: click.Context) -> CalAIConfig:
    return ctx.obj['config']


def read_events(path: str) -> List[UnifiedEvent]:
    """Load and normalize an events file, turning I/O problems into CLI errors."""
    try:
        return load_events_file(Path(path))
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Could not read events from {path}: {e}")


def day_bounds(day: date) -> tuple:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def events_on(events: List[UnifiedEvent], day: date) -> List[UnifiedEvent]:
    start, end = day_bounds(day)
    return [e for e in events if start <= e.start < end]


def find_event(events: List[UnifiedEvent], event_id: str) -> UnifiedEvent:
    for event in events:
        if event.id == event_id:
            return event
    raise click.ClickException(f"No event with id '{event_id}' in events file")


def create_events_table(events: List[UnifiedEvent], title: str) -> Table:
    """Create a schedule table."""
    table = Table(
        title=title,
        box=box.SIMPLE,
        show_header=True,
        header_style="bold magenta",
    )

    table.add_column("Time", style="dim", width=20)
    table.add_column("Event", style="white")
    table.add_column("Location", style="cyan")
    table.add_column("Source", style="dim", width=8)

    for event in events:
        when = "All day" if event.is_all_day else f"{format_time(event.start)} - {format_time(event.end)}"
        table.add_row(when, event.title, event.location or "", event.source_label)

    return table


def create_tasks_table(event_id: str, tasks: List[EventTask]) -> Table:
    table = Table(
        title=f"Tasks for {event_id}",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold magenta",
    )

    table.add_column("", width=3)
    table.add_column("Task", style="white")
    table.add_column("Priority", width=8)
    table.add_column("Category", style="cyan", width=12)
    table.add_column("When", style="dim")
    table.add_column("ID", style="dim")

    for task in tasks:
        table.add_row(
            Text("x", style="green") if task.is_completed else Text("-", style="dim"),
            task.title,
            Text(task.priority.value, style=PRIORITY_STYLES.get(task.priority.value, "white")),
            task.category.value,
            task.timing.description,
            task.id[:8],
        )

    return table


def task_manager(ctx: click.Context) -> EventTaskManager:
    config = get_config(ctx)
    try:
        settings = TaskGenerationSettings.from_dict(config.tasks)
    except (ValueError, TypeError) as e:
        raise click.ClickException(f"Invalid tasks settings in config: {e}")
    return EventTaskManager(store=EventTaskStore(config.tasks_path), settings=settings)


def resolve_task_id(manager: EventTaskManager, event_id: str, task_id: str) -> str:
    """Accept a full task id or the unique 8-character prefix shown in tables."""
    container = manager.get_tasks(event_id)
    if container is None:
        raise click.ClickException(f"No tasks for event '{event_id}'")
    candidates = [t.id for t in container.tasks if t.id.startswith(task_id)]
    if len(candidates) != 1:
        raise click.ClickException(f"Task id '{task_id}' matches {len(candidates)} tasks")
    return candidates[0]


# =============================================================================
# CLI GROUPS AND COMMANDS
# =============================================================================

@click.group()
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='YAML config file (default: ./config.yaml or $CALAI_CONFIG)')
@click.pass_context
def cli(ctx: click.Context, json_output: bool, config_path: Optional[str]) -> None:
    """CalAI - Calendar assistant

    Classifies what you say, reads your day back to you
    and keeps track of what needs doing around your events.
    """
    ctx.ensure_object(dict)
    ctx.obj['json'] = json_output

    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))

    setup_logging(config.log_level)
    ctx.obj['config'] = config


# =============================================================================
# CLASSIFY COMMAND
# =============================================================================

@cli.command()
@click.argument('text')
@click.pass_context
def classify(ctx: click.Context, text: str) -> None:
    """Classify an utterance as event, task, query, update or delete."""
    json_output = ctx.obj.get('json', False)

    try:
        classifier = create_intent_classifier(get_config(ctx).classifier)
    except (ValueError, TypeError) as e:
        raise click.ClickException(f"Invalid classifier overrides in config: {e}")

    result = classifier.classify(text)

    if json_output:
        output_json({"text": text, **result.to_dict()})
        return

    color = INTENT_COLORS.get(result.type, "white")
    console.print()
    console.print(Panel(
        f"[bold]Input:[/bold] {text}\n"
        f"[bold]Intent:[/bold] [{color}]{result.type.value.upper()}[/]\n"
        f"[bold]Confidence:[/bold] {result.confidence:.0%}\n"
        f"[dim]{result.details}[/dim]",
        title="[bold blue]Intent[/bold blue]",
        border_style="blue",
        box=box.ROUNDED,
    ))
    console.print()


# =============================================================================
# ANALYZE COMMAND
# =============================================================================

@cli.command()
@click.argument('events_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--date', '-d', 'day', type=click.DateTime(formats=DATE_FORMATS),
              help='Day to analyze (default: today)')
@click.pass_context
def analyze(ctx: click.Context, events_file: str, day: Optional[datetime]) -> None:
    """Analyze a day's schedule and narrate it."""
    json_output = ctx.obj.get('json', False)

    target = day.date() if day else date.today()
    events = events_on(read_events(events_file), target)

    analysis = ScheduleAnalyzer().analyze(events, day_bounds(target))
    time_ref = VoiceResponseGenerator.time_reference(target, date.today())
    narrative = NarrativeBuilder().build(analysis, time_ref)

    if json_output:
        output_json({
            "date": target.isoformat(),
            "analysis": analysis.to_dict(),
            "narrative": narrative,
        })
        return

    color = CHARACTER_COLORS.get(analysis.character.value, "white")
    console.print()
    console.print(Panel(
        f"[bold]Date:[/bold] {target.strftime('%A, %B %d, %Y')}\n"
        f"[bold]Character:[/bold] [{color}]{analysis.character.value.upper()}[/]\n"
        f"[bold]Events:[/bold] {len(analysis.timed_events)} timed, {len(analysis.all_day_events)} all-day\n"
        f"[bold]Booked:[/bold] {analysis.total_duration.total_seconds() / 3600:.1f}h",
        title="[bold magenta]Schedule Analysis[/bold magenta]",
        border_style="magenta",
        box=box.ROUNDED,
    ))

    if events:
        console.print(create_events_table(sorted(events, key=lambda e: e.start), "Schedule"))

    if analysis.busy_periods:
        console.print("[bold cyan]Busy Periods:[/bold cyan]")
        for period in analysis.busy_periods:
            console.print(
                f"  {format_time(period.start)} - {format_time(period.end)}: "
                f"{period.event_count} events"
            )

    if analysis.significant_gaps:
        console.print("\n[bold cyan]Free Windows:[/bold cyan]")
        for gap in analysis.significant_gaps:
            console.print(f"  {format_time(gap.start)} - {format_time(gap.end)} ({gap.duration_minutes} min)")

    if analysis.tight_transitions:
        console.print("\n[bold yellow]Tight Transitions:[/bold yellow]")
        for transition in analysis.tight_transitions:
            console.print(f"  {transition.from_event.title} -> {transition.to_event.title}")

    console.print(f"\n[italic]{narrative}[/italic]")
    console.print()


# =============================================================================
# NEXT COMMAND
# =============================================================================

@cli.command(name='next')
@click.argument('events_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--now', 'now', type=click.DateTime(formats=DATETIME_FORMATS),
              help='Reference time (default: current time)')
@click.pass_context
def next_event(ctx: click.Context, events_file: str, now: Optional[datetime]) -> None:
    """Describe the next upcoming event."""
    json_output = ctx.obj.get('json', False)

    now = now or datetime.now()
    upcoming = [e for e in read_events(events_file) if not e.is_all_day and e.start > now]
    upcoming.sort(key=lambda e: e.start)

    following = upcoming[1] if len(upcoming) > 1 else None
    response = VoiceResponseGenerator().generate_next_event_response(
        upcoming[0] if upcoming else None, following, now=now
    )

    if json_output:
        output_json({
            "next_event": upcoming[0].to_dict() if upcoming else None,
            "response": response.to_dict(),
        })
        return

    console.print()
    console.print(Panel(
        response.full_message,
        title="[bold blue]Up Next[/bold blue]",
        border_style="blue",
        box=box.ROUNDED,
    ))
    console.print()


# =============================================================================
# BRIEF COMMANDS
# =============================================================================

@cli.group()
def brief() -> None:
    """Generate briefings."""
    pass


@brief.command()
@click.argument('events_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--date', '-d', 'day', type=click.DateTime(formats=DATE_FORMATS),
              help='Day to brief (default: today)')
@click.option('--weather', '-w', 'weather_file', type=click.Path(exists=True, dir_okay=False),
              help='JSON file with the weather snapshot')
@click.pass_context
def morning(ctx: click.Context, events_file: str, day: Optional[datetime],
            weather_file: Optional[str]) -> None:
    """Generate the morning briefing."""
    json_output = ctx.obj.get('json', False)
    config = get_config(ctx)

    try:
        settings = MorningBriefingSettings.from_dict(config.briefing)
    except (ValueError, TypeError) as e:
        raise click.ClickException(f"Invalid briefing settings in config: {e}")

    weather = None
    if weather_file:
        try:
            with open(weather_file) as f:
                weather = WeatherData.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise click.ClickException(f"Could not read weather from {weather_file}: {e}")

    service = MorningBriefingService(settings=settings, store=BriefingSettingsStore(config.briefing_path))
    target = day.date() if day else date.today()
    briefing = service.generate_briefing(read_events(events_file), target, weather)
    script = service.generate_voice_script(briefing)

    if json_output:
        output_json({
            "type": "MORNING_BRIEF",
            "generated_at": datetime.now().isoformat(),
            "briefing": briefing.to_dict(),
            "voice_script": script,
        })
        return

    # Display morning brief
    console.print()
    header = f"[bold]Date:[/bold] {target.strftime('%A, %B %d, %Y')}\n[bold]Schedule:[/bold] {briefing.day_summary}"
    if weather:
        header += (
            f"\n[bold]Weather:[/bold] {weather.temperature_formatted} "
            f"{weather.condition_description} ({weather.high_low_formatted})"
        )
    console.print(Panel(
        header,
        title=f"[bold blue]{briefing.greeting}[/bold blue]",
        border_style="blue",
        box=box.DOUBLE,
    ))

    if briefing.events:
        table = Table(box=box.SIMPLE, show_header=True, header_style="bold magenta")
        table.add_column("Time", style="dim", width=20)
        table.add_column("Event", style="white")
        table.add_column("Location", style="cyan")
        for event in briefing.events:
            table.add_row(event.time_formatted, event.title, event.location or "")
        console.print(table)

    console.print("[bold cyan]Notes:[/bold cyan]")
    for suggestion in briefing.suggestions:
        console.print(f"  [dim]-[/dim] {suggestion}")

    console.print(f"\n[italic]{script}[/italic]")
    console.print()


# =============================================================================
# TASK COMMANDS
# =============================================================================

@cli.group()
def tasks() -> None:
    """Manage tasks attached to events."""
    pass


@tasks.command(name='list')
@click.argument('event_id', required=False)
@click.pass_context
def list_tasks(ctx: click.Context, event_id: Optional[str]) -> None:
    """Show event tasks."""
    json_output = ctx.obj.get('json', False)
    manager = task_manager(ctx)

    event_ids = [event_id] if event_id else manager.event_ids
    containers = [manager.get_tasks(eid) for eid in event_ids]
    containers = [c for c in containers if c is not None]

    if json_output:
        output_json({"events": [c.to_dict() for c in containers]})
        return

    console.print()
    if not containers:
        console.print("[dim]No event tasks.[/dim]")
    for container in containers:
        console.print(create_tasks_table(container.event_id, container.tasks))
        console.print(
            f"  [dim]{container.event_type.value} - "
            f"{container.completion_percentage:.0f}% complete[/dim]\n"
        )


@tasks.command()
@click.argument('events_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('event_id')
@click.pass_context
def suggest(ctx: click.Context, events_file: str, event_id: str) -> None:
    """Suggest template tasks for an event."""
    json_output = ctx.obj.get('json', False)

    event = find_event(read_events(events_file), event_id)
    suggestions = task_manager(ctx).suggest_tasks(event)

    if json_output:
        output_json({"event_id": event_id, "suggestions": [t.to_dict() for t in suggestions]})
        return

    console.print()
    if not suggestions:
        console.print(f"[dim]No suggested tasks for '{event.title}'.[/dim]")
    else:
        console.print(create_tasks_table(event_id, suggestions))
    console.print()


@tasks.command()
@click.argument('events_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('event_id')
@click.pass_context
def accept(ctx: click.Context, events_file: str, event_id: str) -> None:
    """Attach the suggested tasks to an event."""
    json_output = ctx.obj.get('json', False)

    event = find_event(read_events(events_file), event_id)
    container = task_manager(ctx).accept_suggestions(event)

    if json_output:
        output_json({"event_id": event_id, "tasks": container.to_dict() if container else None})
        return

    console.print()
    if container is None:
        console.print(f"[dim]Nothing to accept for '{event.title}'.[/dim]")
    else:
        console.print(create_tasks_table(event_id, container.tasks))
    console.print()


@tasks.command()
@click.argument('event_id')
@click.argument('title')
@click.option('--priority', '-p', default='medium',
              type=click.Choice([p.value for p in TaskPriority]), help='Task priority')
@click.option('--category', '-c', default='preparation',
              type=click.Choice([c.value for c in TaskCategory]), help='Task category')
@click.option('--before', 'hours_before', type=int, default=24, help='Hours before the event')
@click.pass_context
def add(ctx: click.Context, event_id: str, title: str, priority: str, category: str,
        hours_before: int) -> None:
    """Add a custom task to an event."""
    json_output = ctx.obj.get('json', False)

    task = EventTask(
        title=title,
        priority=TaskPriority(priority),
        category=TaskCategory(category),
        timing=TaskTiming.before(hours_before),
    )
    task_manager(ctx).add_task(event_id, task)

    if json_output:
        output_json({"event_id": event_id, "task": task.to_dict()})
        return

    console.print(f"[green]Added task '{title}' ({task.id[:8]}) to {event_id}.[/green]")


@tasks.command()
@click.argument('event_id')
@click.argument('task_id')
@click.pass_context
def toggle(ctx: click.Context, event_id: str, task_id: str) -> None:
    """Toggle a task's completion."""
    json_output = ctx.obj.get('json', False)

    manager = task_manager(ctx)
    task = manager.toggle_task_completion(event_id, resolve_task_id(manager, event_id, task_id))

    if json_output:
        output_json({"event_id": event_id, "task": task.to_dict()})
        return

    state = "[green]done[/green]" if task.is_completed else "[yellow]pending[/yellow]"
    console.print(f"'{task.title}' is now {state}.")


@tasks.command()
@click.argument('event_id')
@click.argument('task_id', required=False)
@click.pass_context
def delete(ctx: click.Context, event_id: str, task_id: Optional[str]) -> None:
    """Delete one task, or all of an event's tasks when no TASK_ID is given."""
    json_output = ctx.obj.get('json', False)

    manager = task_manager(ctx)
    if task_id:
        deleted = manager.delete_task(event_id, resolve_task_id(manager, event_id, task_id))
    else:
        deleted = manager.delete_tasks(event_id)

    if json_output:
        output_json({"event_id": event_id, "task_id": task_id, "deleted": deleted})
        return

    if deleted:
        console.print("[green]Deleted.[/green]")
    else:
        console.print(f"[dim]No tasks for event '{event_id}'.[/dim]")


# =============================================================================
# FOLLOW-UP COMMAND
# =============================================================================

@cli.command()
@click.argument('events_file', type=click.Path(exists=True, dir_okay=False))
@click.argument('event_id')
@click.option('--notes', '-n', help='Meeting notes text')
@click.option('--notes-file', type=click.Path(exists=True, dir_okay=False), help='File with meeting notes')
@click.pass_context
def followup(ctx: click.Context, events_file: str, event_id: str, notes: Optional[str],
             notes_file: Optional[str]) -> None:
    """Summarize a finished meeting and extract action items."""
    json_output = ctx.obj.get('json', False)

    if notes_file:
        notes = Path(notes_file).read_text()

    event = find_event(read_events(events_file), event_id)
    service = PostMeetingService(store=FollowUpStore(get_config(ctx).follow_ups_path))

    follow_up = service.process_completed_meeting(event, notes)
    already_processed = follow_up is None
    if already_processed:
        follow_up = service.get_follow_up(event_id)

    if json_output:
        output_json({
            "already_processed": already_processed,
            "follow_up": follow_up.to_dict() if follow_up else None,
        })
        return

    console.print()
    if follow_up is None:
        console.print(f"[dim]'{event.title}' was already processed.[/dim]\n")
        return

    console.print(Panel(
        f"[bold]Meeting:[/bold] {follow_up.event_title}\n"
        f"[bold]Date:[/bold] {follow_up.meeting_date.strftime('%A, %B %d, %Y %H:%M')}\n"
        f"{follow_up.summary.highlights}",
        title="[bold blue]Meeting Follow-up[/bold blue]"
              + (" [dim](existing)[/dim]" if already_processed else ""),
        border_style="blue",
        box=box.ROUNDED,
    ))

    if follow_up.summary.topics:
        console.print("[bold cyan]Topics:[/bold cyan]")
        for topic in follow_up.summary.topics:
            console.print(f"  [dim]-[/dim] {topic}")

    if follow_up.decisions:
        console.print("\n[bold cyan]Decisions:[/bold cyan]")
        for decision in follow_up.decisions:
            console.print(f"  [dim]-[/dim] {decision.decision}")

    if follow_up.action_items:
        console.print("\n[bold cyan]Action Items:[/bold cyan]")
        for item in follow_up.action_items:
            style = PRIORITY_STYLES.get(item.priority.value, "white")
            assignee = f" [dim]({item.assignee})[/dim]" if item.assignee else ""
            console.print(f"  [{style}]{item.priority.value.upper():<6}[/] {item.title}{assignee}")

    if follow_up.follow_up_meetings:
        console.print("\n[bold cyan]Suggested Follow-ups:[/bold cyan]")
        for meeting in follow_up.follow_up_meetings:
            console.print(f"  [dim]-[/dim] {meeting.title}: {meeting.purpose}")

    console.print()


# =============================================================================
# VERSION COMMAND
# =============================================================================

@cli.command()
@click.pass_context
def version(ctx: click.Context) -> None:
    """Show CalAI CLI version."""
    json_output = ctx.obj.get('json', False)

    version_info = {
        "name": "CalAI CLI",
        "version": __version__,
        "description": "Calendar assistant: intent classification, schedule narration, event tasks",
    }

    if json_output:
        output_json(version_info)
        return

    console.print()
    console.print(Panel(
        f"[bold]Name:[/bold] {version_info['name']}\n"
        f"[bold]Version:[/bold] {version_info['version']}\n"
        f"[bold]Description:[/bold] {version_info['description']}",
        title="[bold blue]CalAI[/bold blue]",
        border_style="blue",
        box=box.DOUBLE,
    ))
    console.print()


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main():
    """Main entry point for CalAI CLI."""
    cli(obj={})


if __name__ == '__main__':
    main()
