"""Rich console output, markdown file save and JSON export for deliberation results."""

import logging
import re
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.rule import Rule
from rich.text import Text

from council.models import DeliberationResult, Persona

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def print_turn_header(round_number: int, persona: Persona, out: Console | None = None) -> None:
    """Print the rule shown before a streamed turn."""
    (out or console).print()
    (out or console).print(Rule(f"[bold yellow]Round {round_number}: {persona.name}[/bold yellow]"))


def print_result(result: DeliberationResult, out: Console | None = None) -> None:
    """Print every turn in full, then the synthesis."""
    out = out or console
    out.print(Rule("[bold cyan]Council Deliberation[/bold cyan]"))
    out.print(Text(f"Question: {result.question}", style="dim"))
    for rnd in result.rounds:
        out.print(Rule(f"[bold yellow]Round {rnd.number}[/bold yellow]"))
        for turn in rnd.turns:
            out.print(Text.assemble((turn.persona.name, "bold blue"), " ", (f"({turn.model})", "dim")))
            out.print(Markdown(turn.content))
            out.print()
    print_synthesis(result, out)


def print_synthesis(result: DeliberationResult, out: Console | None = None) -> None:
    """Print the full synthesis to the console using Rich markdown."""
    out = out or console
    out.print(Rule("[bold green]Synthesis[/bold green]"))
    out.print(
        Text(
            f"Synthesized by: {result.synthesis_model} | "
            f"Duration: {result.duration_sec:.1f}s | "
            f"Rounds: {len(result.rounds)}",
            style="dim",
        )
    )
    out.print(Markdown(result.synthesis))


def result_to_dict(result: DeliberationResult) -> dict[str, Any]:
    """Convert a result to plain JSON-serialisable data (tuples become lists)."""
    data = asdict(result)
    data["rounds"] = [
        {"number": rnd["number"], "turns": list(rnd["turns"])}
        for rnd in data["rounds"]
    ]
    return data


def save_to_file(result: DeliberationResult, output_dir: Path) -> Path:
    """Save the full deliberation transcript as a markdown file.

    Args:
        result: The completed DeliberationResult.
        output_dir: Directory to save the file in.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filepath = output_dir / f"{timestamp}_{_slug(result.question)}.md"

    panel: list[str] = []
    for rnd in result.rounds[:1]:
        panel = [f"{t.persona.name} ({t.model})" for t in rnd.turns]

    first_line = result.question.strip().splitlines()[0] if result.question.strip() else ""
    lines: list[str] = [
        f"# Council Deliberation: {first_line[:80]}",
        "",
        f"**Date:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"**Panel:** {', '.join(panel) if panel else '(none)'}",
        f"**Synthesizer:** {result.synthesis_model}",
        f"**Rounds:** {len(result.rounds)}",
        f"**Duration:** {result.duration_sec:.1f}s",
        "",
        "## Question",
        "",
        result.question,
        "",
        "---",
        "",
    ]

    for rnd in result.rounds:
        round_label = "Initial Positions" if rnd.number == 1 else "Responses"
        lines.append(f"## Round {rnd.number}: {round_label}")
        lines.append("")
        for turn in rnd.turns:
            lines.append(f"### {turn.persona.name} ({turn.model})")
            lines.append("")
            lines.append(turn.content)
            lines.append("")

    lines += [
        f"## Synthesis (by {result.synthesis_model})",
        "",
        result.synthesis,
        "",
    ]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Deliberation saved to: %s", filepath)
    return filepath
