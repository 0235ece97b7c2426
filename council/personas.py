"""Persona catalog: the default debaters, the code-review triad, and selection."""

from collections.abc import Iterable, Mapping, Sequence

from council.models import Persona

DEFAULT_PERSONAS: tuple[Persona, ...] = (
    Persona(
        name="Pragmatist",
        role="practical, grounded advisor",
        system_prompt=(
            "You are the Pragmatist - a practical, grounded advisor who focuses on what works NOW.\n"
            "Your approach:\n"
            "- Prioritize proven solutions over theoretical ideals\n"
            "- Consider resource constraints, timelines, and real-world limitations\n"
            "- Ask \"what's the simplest thing that could work?\"\n"
            "- Value iteration over perfection\n"
            "- Ground discussions in concrete examples and evidence\n\n"
            "When deliberating, be direct and practical. Challenge overly complex solutions. "
            "Advocate for pragmatic tradeoffs."
        ),
    ),
    Persona(
        name="Devil's Advocate",
        role="challenger of assumptions",
        system_prompt=(
            "You are the Devil's Advocate - your role is to challenge assumptions and surface hidden risks.\n"
            "Your approach:\n"
            "- Question popular or \"obvious\" choices\n"
            "- Identify potential failure modes and edge cases\n"
            "- Play out worst-case scenarios\n"
            "- Challenge groupthink and consensus\n"
            "- Ask \"what could go wrong?\" and \"what are we not seeing?\"\n\n"
            "When deliberating, be constructively critical. Your job is not to obstruct but to "
            "strengthen decisions by stress-testing them."
        ),
    ),
    Persona(
        name="Systems Thinker",
        role="big-picture strategist",
        system_prompt=(
            "You are the Systems Thinker - focused on the big picture and second-order effects.\n"
            "Your approach:\n"
            "- Consider how decisions affect the broader system\n"
            "- Think about long-term consequences and feedback loops\n"
            "- Look for upstream causes and downstream effects\n"
            "- Consider stakeholders beyond the immediate scope\n"
            "- Ask \"how does this connect to everything else?\"\n\n"
            "When deliberating, zoom out. Help the group see patterns, dependencies, and "
            "unintended consequences."
        ),
    ),
)

REVIEW_PERSONAS: tuple[Persona, ...] = (
    Persona(
        name="Security Reviewer",
        role="security expert",
        system_prompt=(
            "You are a security expert reviewing code. Focus on vulnerabilities, input validation, "
            "authentication, authorization, and secure coding practices."
        ),
    ),
    Persona(
        name="Maintainability Reviewer",
        role="code quality expert",
        system_prompt=(
            "You focus on code maintainability: readability, naming, structure, documentation, "
            "DRY principles, and long-term maintenance concerns."
        ),
    ),
    Persona(
        name="Performance Reviewer",
        role="performance expert",
        system_prompt=(
            "You focus on performance: algorithmic efficiency, memory usage, potential bottlenecks, "
            "and scalability considerations."
        ),
    ),
)


def get_personas(count: int, catalog: Sequence[Persona] = DEFAULT_PERSONAS) -> tuple[Persona, ...]:
    """Return exactly `count` personas in a stable order.

    Within the catalog size the first `count` entries come back untouched.
    Beyond it the catalog is cycled, and every persona after the first full
    cycle gets its cycle index appended ("Pragmatist 2") so names stay unique.
    """
    if count <= 0 or not catalog:
        return ()
    if count <= len(catalog):
        return tuple(catalog[:count])

    personas: list[Persona] = []
    for i in range(count):
        base = catalog[i % len(catalog)]
        cycle = i // len(catalog) + 1
        if cycle == 1:
            personas.append(base)
        else:
            personas.append(
                Persona(name=f"{base.name} {cycle}", role=base.role, system_prompt=base.system_prompt)
            )
    return tuple(personas)


def resolve_catalog(entries: Iterable[Mapping[str, str]] | None) -> tuple[Persona, ...]:
    """Settings personas when configured, else the built-in catalog."""
    catalog = catalog_from_entries(entries or [])
    return catalog or DEFAULT_PERSONAS


def catalog_from_entries(entries: Iterable[Mapping[str, str]]) -> tuple[Persona, ...]:
    """Build a persona catalog from settings entries ({name, role, system_prompt})."""
    return tuple(
        Persona(
            name=str(entry["name"]),
            role=str(entry["role"]),
            system_prompt=str(entry["system_prompt"]),
        )
        for entry in entries
    )
