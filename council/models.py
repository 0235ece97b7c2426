"""Pure dataclasses for the council deliberation pipeline. No logic, no deps."""

from dataclasses import dataclass, field
from typing import Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class Persona:
    name: str
    role: str              # short role description, e.g. "challenger of assumptions"
    system_prompt: str


@dataclass(frozen=True)
class Message:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class Turn:
    persona: Persona
    model: str             # model identifier the turn was sent to
    content: str


@dataclass(frozen=True)
class Round:
    number: int
    turns: tuple[Turn, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DeliberationResult:
    question: str
    rounds: tuple[Round, ...]
    synthesis: str         # Final markdown synthesis
    synthesis_model: str = ""
    duration_sec: float = 0.0
