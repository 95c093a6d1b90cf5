"""Rich console rendering for live debates and stored transcripts."""

import logging

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from debatesim.models import Message, Sender, Session
from debatesim.transcript import format_duration
from debatesim.word_counter import LimitBand, classify

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_BAND_STYLES = {
    LimitBand.NOMINAL: "green",
    LimitBand.WARNING: "yellow",
    LimitBand.OVER_LIMIT: "bold red",
}


def word_status_text(count: int, limit: int) -> Text:
    """`12 / 200 words`, coloured by budget band, with a warning when over."""
    status = classify(count, limit)
    text = Text(f"{count} / {limit} words", style=_BAND_STYLES[status.band])
    if status.is_over_limit:
        text.append("  Over limit! Please shorten your response.", style="red")
    return text


def print_session_header(session: Session) -> None:
    console.print(Rule("[bold cyan]DebateSim[/bold cyan]"))
    console.print(f"Topic: [italic]{escape(session.topic)}[/italic]")
    console.print(f"You argue [bold]{session.human_side.value}[/bold], the AI argues [bold]{session.ai_side.value}[/bold].")
    console.print("[dim]Type your argument and press Enter. Type /end to finish.[/dim]\n")


def print_message(message: Message, limit: int) -> None:
    if message.sender is Sender.AI:
        title, border = "[bold]AI[/bold]", "magenta"
    else:
        title, border = "[bold]You[/bold]", "cyan"
    console.print(
        Panel(
            Text(message.content),
            title=title,
            subtitle=word_status_text(message.word_count, limit),
            border_style=border,
        )
    )


def print_session_summary(session: Session) -> None:
    console.print(Rule("[bold green]Debate finished[/bold green]"))
    console.print(
        Text(
            f"Duration: {format_duration(session)} | Messages: {len(session.committed_messages)}",
            style="dim",
        )
    )


def print_transcript_list(keys: list[str]) -> None:
    if not keys:
        console.print("No saved transcripts.")
        return
    for key in keys:
        console.print(f"  {key}")
