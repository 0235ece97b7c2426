"""Click CLI: loads config, builds the chat service, runs a council and renders the result."""

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import click
import uvicorn
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.rule import Rule

from config.config_loader import AppConfig, load_config
from council.deliberation import Council, CouncilConfig
from council.events import CouncilEvents
from council.models import DeliberationResult, Persona, Round
from council.output import print_result, print_turn_header, result_to_dict, save_to_file
from council.personas import resolve_catalog
from council.providers.base import ChatService, ProviderError
from council.providers.openrouter import OpenRouterProvider
from council.server import create_app
from council.validation import ValidationError, parse_csv, validate_range

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

Action = Callable[[Council], Awaitable[DeliberationResult]]


@dataclass
class RunOptions:
    agents: int | None
    rounds: int | None
    models: str | None
    no_stream: bool
    no_color: bool
    output_dir: str | None
    save: bool
    as_json: bool


class ConsoleEvents(CouncilEvents):
    """Streams turns to the terminal, or reports round progress in batch mode."""

    def __init__(self, out: Console, total_rounds: int, stream: bool) -> None:
        self._out = out
        self._total_rounds = total_rounds
        self._stream = stream

    def on_round_start(self, round_number: int, persona: Persona) -> None:
        if self._stream:
            print_turn_header(round_number, persona, self._out)

    def on_token(self, token: str) -> None:
        self._out.print(token, end="", markup=False, highlight=False, soft_wrap=True)

    def on_round_complete(self, rnd: Round) -> None:
        if not self._stream:
            self._out.print(f"[green]OK[/green] Round {rnd.number} complete ({len(rnd.turns)} turns)")
        elif rnd.number == self._total_rounds:
            # Synthesis tokens follow the last round.
            self._out.print()
            self._out.print(Rule("[bold green]Synthesis[/bold green]"))


def _setup_logging(verbose: bool) -> None:
    # WARNING by default so log lines do not break up streamed tokens.
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _fail(message: str, label: str = "Error") -> NoReturn:
    console.print(f"[bold red]{label}:[/bold red] {message}")
    sys.exit(1)


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError:
        _fail(f"Not a UTF-8 text file: {path}")


def _build_provider(config: AppConfig) -> ChatService:
    return OpenRouterProvider(config.provider)


def _build_provider_or_exit(config: AppConfig) -> ChatService:
    try:
        return _build_provider(config)
    except ProviderError as exc:
        _fail(f"{exc}. Set it in .env or the environment.", "Config error")


def _council_options(func: Callable) -> Callable:
    """Options shared by ask/review/decide."""
    options = [
        click.option("--agents", "-a", type=int, default=None, help="Number of personas (default: from config)"),
        click.option("--rounds", "-r", type=int, default=None, help="Number of rounds (default: from config)"),
        click.option("--models", "-m", default=None, help="Comma-separated models, assigned round-robin"),
        click.option("--no-stream", is_flag=True, help="Wait for each turn instead of streaming tokens"),
        click.option("--no-color", is_flag=True, help="Disable colored output"),
        click.option("--output", "output_dir", default=None, help="Save a markdown transcript to this directory"),
        click.option("--save", is_flag=True, help="Save a markdown transcript to the configured output_dir"),
        click.option("--json", "as_json", is_flag=True, help="Print the result as JSON"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _options_from(kwargs: dict) -> RunOptions:
    return RunOptions(
        agents=kwargs["agents"],
        rounds=kwargs["rounds"],
        models=kwargs["models"],
        no_stream=kwargs["no_stream"],
        no_color=kwargs["no_color"],
        output_dir=kwargs["output_dir"],
        save=kwargs["save"],
        as_json=kwargs["as_json"],
    )


async def _drive(
    council: Council,
    action: Action,
    service: ChatService,
    out: Console,
    show_progress: bool,
) -> DeliberationResult:
    try:
        if not show_progress:
            return await action(council)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=out,
            transient=True,
        ) as progress:
            progress.add_task("Council deliberating...", total=None)
            return await action(council)
    finally:
        await service.close()


def _run_council(config: AppConfig, opts: RunOptions, action: Action, banner: str) -> DeliberationResult:
    """Validate options, run one council action, render the result. Exits 1 on failure."""
    out = Console(legacy_windows=False, no_color=opts.no_color, highlight=not opts.no_color)
    defaults = config.defaults

    agents = opts.agents if opts.agents is not None else defaults.agents
    rounds = opts.rounds if opts.rounds is not None else defaults.rounds
    try:
        validate_range(agents, "agents", 1, defaults.max_agents)
        validate_range(rounds, "rounds", 1, defaults.max_rounds)
    except ValidationError as exc:
        _fail(str(exc))
    models = parse_csv(opts.models) or defaults.models

    stream = not (opts.no_stream or opts.as_json)
    events = ConsoleEvents(out, rounds, stream) if not opts.as_json else CouncilEvents()

    service = _build_provider_or_exit(config)
    council = Council(
        service,
        CouncilConfig(
            agents=agents,
            rounds=rounds,
            models=tuple(models),
            stream=stream,
            events=events,
            personas=resolve_catalog(config.personas),
        ),
    )

    if not opts.as_json:
        out.print(f"\n[bold cyan]{banner}[/bold cyan] {agents} agents, {rounds} rounds")
        out.print(f"Models: {', '.join(models)} (via {service.name()})\n")

    try:
        result = asyncio.run(_drive(council, action, service, out, show_progress=not stream and not opts.as_json))
    except ValidationError as exc:
        _fail(str(exc))
    except ProviderError as exc:
        _fail(str(exc))

    if opts.as_json:
        click.echo(json.dumps(result_to_dict(result), indent=2))
    elif stream:
        out.print()
        out.print(f"[dim]Done in {result.duration_sec:.1f}s[/dim]")
    else:
        print_result(result, out)

    if opts.output_dir or opts.save:
        output_dir = Path(opts.output_dir) if opts.output_dir else config.defaults.output_dir
        saved_path = save_to_file(result, output_dir)
        if not opts.as_json:
            out.print(f"\n[dim]Saved to: {saved_path}[/dim]")
    return result


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Council -- let AI personas debate a question and synthesize the result.

    \b
    Examples:
      council ask "Should we use REST or GraphQL?" --rounds 1
      council ask "Monorepo vs polyrepo?" -a 4 -m openai/gpt-4o-mini,google/gemini-2.0-flash-001
      council review src/app.py --agents 2
      council decide -o "Postgres,MongoDB,DynamoDB"
      council serve --port 3000
    """
    # Reconfigure stdout/stderr to UTF-8 on Windows so model output containing
    # Unicode chars doesn't crash the ANSI render path.
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8", errors="replace")

    load_dotenv()
    _setup_logging(verbose)

    try:
        ctx.obj = load_config()
    except (FileNotFoundError, ValueError) as exc:
        _fail(str(exc), "Config error")


@main.command()
@click.argument("question", required=False)
@click.option("--file", "question_file", type=click.Path(exists=True, dir_okay=False), help="Read question from a file")
@_council_options
@click.pass_obj
def ask(config: AppConfig, question: str | None, question_file: str | None, **kwargs) -> None:
    """Ask the council to deliberate on a question."""
    if question_file:
        question = _read_text(question_file).strip()
    if not question or not question.strip():
        _fail("Provide a QUESTION argument or --file.")

    _run_council(config, _options_from(kwargs), lambda c: c.deliberate(question), "Council assembling:")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@_council_options
@click.pass_obj
def review(config: AppConfig, file: str, **kwargs) -> None:
    """Have the council review a code file."""
    file_content = _read_text(file)
    _run_council(
        config,
        _options_from(kwargs),
        lambda c: c.review(file, file_content),
        f"Council reviewing {file}:",
    )


@main.command()
@click.option("--options", "-o", "options_csv", required=True, help="Comma-separated options (at least 2)")
@_council_options
@click.pass_obj
def decide(config: AppConfig, options_csv: str, **kwargs) -> None:
    """Have the council help choose between options."""
    options = parse_csv(options_csv)
    if len(options) < 2:
        _fail("At least 2 options are required")

    _run_council(
        config,
        _options_from(kwargs),
        lambda c: c.decide(options),
        "Council deliberating on decision:",
    )


@main.command()
@click.option("--host", default=None, help="Interface to bind (default: from config)")
@click.option("--port", "-p", type=int, default=None, help="Port to listen on (default: from config)")
@click.pass_obj
def serve(config: AppConfig, host: str | None, port: int | None) -> None:
    """Start the HTTP/SSE service."""
    host = host or config.server.host
    port = port or config.server.port
    service = _build_provider_or_exit(config)
    console.print(f"[bold cyan]Council server[/bold cyan] running at http://{host}:{port}")
    uvicorn.run(create_app(config, service), host=host, port=port)


if __name__ == "__main__":
    main()
