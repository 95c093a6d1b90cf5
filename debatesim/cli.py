"""Click CLI: interactive terminal debates, transcript browsing, and the HTTP server."""

import asyncio
import logging
import sys
import threading
from dataclasses import replace
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.markup import escape

from config.config_loader import AppConfig, load_config
from debatesim.errors import DebateSimError, ValidationError
from debatesim.gateway import ProviderGateway
from debatesim.healthcheck import check_gateway
from debatesim.models import Session, Side
from debatesim.orchestrator import DebateOrchestrator, EndResult
from debatesim.output import (
    console,
    print_message,
    print_session_header,
    print_session_summary,
    print_transcript_list,
    word_status_text,
)
from debatesim.prompts import PromptBuilder
from debatesim.storage import TranscriptStore, load_session
from debatesim.topics import parse_topic_file
from debatesim.transcript import render_as_text
from debatesim.word_counter import count_words

logger = logging.getLogger(__name__)

END_COMMANDS = {"/end", "/quit", "/exit"}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _load_config_or_exit(provider: str | None = None) -> AppConfig:
    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)
    if provider:
        if provider not in config.models:
            console.print(f"[bold red]Config error:[/bold red] Unknown provider '{provider}'")
            sys.exit(1)
        config.defaults = replace(config.defaults, provider=provider)
    return config


def _resolve_topic(topic: str | None, topic_file: str | None, side: str | None) -> tuple[str, Side]:
    """Topic and side from arguments. CLI flags win over front matter."""
    meta: dict = {}
    if topic_file:
        file_topic, meta = parse_topic_file(Path(topic_file))
        topic = topic or file_topic
    if not topic or not topic.strip():
        raise ValidationError("Provide a TOPIC argument or --file")
    side_value = side or meta.get("side")
    if not side_value:
        raise ValidationError("Choose a side with --side for|against")
    try:
        return topic.strip(), Side(str(side_value).lower())
    except ValueError as exc:
        raise ValidationError(f"Side must be 'for' or 'against', got {side_value!r}") from exc


def _check_provider(gateway: ProviderGateway) -> None:
    """Ping the provider; on failure ask whether to go on with fallback replies."""
    console.print("\n[bold]Checking provider...[/bold]")
    ok, err = asyncio.run(check_gateway(gateway))
    if ok:
        console.print(f"  [green]OK  [/green] {gateway.provider_id} ({gateway.model_id})\n")
        return
    short_err = err.splitlines()[0][:120] if err else "unknown error"
    console.print(f"  [red]FAIL[/red] {gateway.provider_id}: {escape(short_err)}")
    if not click.confirm("Continue anyway? The AI will answer with fallback text.", default=False):
        sys.exit(1)
    console.print()


def _read_line(prompt: str) -> "asyncio.Future[str]":
    """Read one line of input on a daemon thread.

    A prompt abandoned by Ctrl+C must not keep the interpreter alive, which
    rules out the default executor used by ``asyncio.to_thread``.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()

    def deliver(value: str | None, exc: Exception | None) -> None:
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(value)

    def worker() -> None:
        try:
            value, error = console.input(prompt), None
        except Exception as exc:
            value, error = None, exc
        try:
            loop.call_soon_threadsafe(deliver, value, error)
        except RuntimeError:
            # Loop already closed after an interrupt.
            pass

    threading.Thread(target=worker, name="debatesim-input", daemon=True).start()
    return future


async def _run_interactive(orchestrator: DebateOrchestrator, limit: int) -> EndResult:
    """Drive a terminal debate until /end, EOF, or cancellation.

    The debate is always ended (and saved) on the way out, even when the
    task is cancelled by Ctrl+C.
    """
    print_session_header(orchestrator.session)
    try:
        with console.status("Thinking about my opening statement..."):
            await orchestrator.start()

        while True:
            try:
                text = await _read_line("[bold cyan]You>[/bold cyan] ")
            except (EOFError, KeyboardInterrupt):
                console.print()
                break
            if text.strip().lower() in END_COMMANDS:
                break
            if not text.strip():
                continue
            console.print(word_status_text(count_words(text), limit))
            with console.status("Thinking about my response..."):
                await orchestrator.submit(text)
    finally:
        result = orchestrator.end()
    return result


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(verbose: bool) -> None:
    """DebateSim -- practise debating against an AI opponent.

    \b
    Examples:
      debatesim debate "Should AI be regulated?" --side for
      debatesim debate --file topic.md
      debatesim transcripts
      debatesim show transcript_<id>_<ms>.json
      debatesim serve --port 3001
    """
    load_dotenv()
    _setup_logging(verbose)


@main.command()
@click.argument("topic", required=False)
@click.option("--side", type=click.Choice([s.value for s in Side], case_sensitive=False),
              default=None, help="Your position on the topic")
@click.option("--file", "topic_file", type=click.Path(exists=True),
              help="Read the topic from a .md file (front matter may set side)")
@click.option("--provider", default=None, help="Provider to use (default: from config)")
@click.option("--no-save", is_flag=True, default=False, help="Do not save the transcript")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
def debate(
    topic: str | None,
    side: str | None,
    topic_file: str | None,
    provider: str | None,
    no_save: bool,
    skip_health_check: bool,
) -> None:
    """Debate TOPIC against the AI. The AI gives the opening statement."""
    config = _load_config_or_exit(provider)

    try:
        topic_text, human_side = _resolve_topic(topic, topic_file, side)
        session = Session.new(topic_text, human_side)
    except ValidationError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)

    gateway = ProviderGateway.from_config(config)
    if not skip_health_check:
        _check_provider(gateway)

    prompts = PromptBuilder(config.prompts, config.defaults.word_limit)
    store = None if no_save else TranscriptStore(config.defaults.transcripts_dir)

    limit = prompts.word_limit
    orchestrator = DebateOrchestrator(
        session,
        gateway,
        prompts,
        store=store,
        timeout_retries=config.defaults.timeout_retries,
        on_ai_message=lambda message: print_message(message, limit),
    )
    try:
        asyncio.run(_run_interactive(orchestrator, limit))
    except KeyboardInterrupt:
        console.print("\n[yellow]Debate interrupted.[/yellow]")
    # end() is idempotent: this returns the result already saved by the loop.
    result = orchestrator.end()

    print_session_summary(result.session)
    if result.save_error is not None:
        console.print("[yellow]Failed to save transcript, but you can still review it below.[/yellow]")
    elif result.transcript_key:
        console.print(f"[dim]Saved to: {config.defaults.transcripts_dir / result.transcript_key}[/dim]")
    console.print()
    console.print(render_as_text(result.session), markup=False, highlight=False)


@main.command()
def transcripts() -> None:
    """List saved transcripts."""
    config = _load_config_or_exit()
    store = TranscriptStore(config.defaults.transcripts_dir)
    try:
        print_transcript_list(store.list())
    except DebateSimError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)


@main.command()
@click.argument("key")
def show(key: str) -> None:
    """Print a saved transcript as plain text."""
    config = _load_config_or_exit()
    store = TranscriptStore(config.defaults.transcripts_dir)
    try:
        session = load_session(store, key)
    except DebateSimError as exc:
        console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
        sys.exit(1)
    console.print(render_as_text(session), markup=False, highlight=False)


@main.command()
@click.option("--host", default=None, help="Bind address (default: from config)")
@click.option("--port", default=None, type=int, help="Port (default: from config)")
@click.option("--provider", default=None, help="Provider to use (default: from config)")
def serve(host: str | None, port: int | None, provider: str | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    from debatesim.server import create_app

    config = _load_config_or_exit(provider)
    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
    )


if __name__ == "__main__":
    main()
