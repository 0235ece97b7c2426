"""Load settings.yaml into typed dataclasses. Reports API key availability at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_PERSONA_KEYS = ("name", "role", "system_prompt")


@dataclass
class ProviderConfig:
    name: str
    base_url: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    temperature: float = 0.7
    referer: str | None = None
    title: str | None = None


@dataclass
class DefaultsConfig:
    agents: int
    rounds: int
    output_dir: Path
    max_agents: int = 9
    max_rounds: int = 5
    models: list[str] = field(default_factory=list)


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 3000


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    provider: ProviderConfig
    server: ServerConfig = field(default_factory=ServerConfig)
    personas: list[dict[str, str]] = field(default_factory=list)
    api_key_available: bool = False


def _load_personas(raw: list | None) -> list[dict[str, str]]:
    """Validate optional persona overrides. Each entry needs name, role, system_prompt."""
    personas: list[dict[str, str]] = []
    for i, entry in enumerate(raw or []):
        missing = [k for k in _PERSONA_KEYS if k not in entry]
        if missing:
            raise ValueError(f"Persona #{i + 1} missing keys: {', '.join(missing)}")
        personas.append({k: str(entry[k]) for k in _PERSONA_KEYS})
    return personas


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError on a
    malformed persona entry or an empty model list.
    Logs a warning for a missing API key but does not raise. The provider
    raises when it is constructed without one.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        agents=int(defaults_raw["agents"]),
        rounds=int(defaults_raw["rounds"]),
        output_dir=Path(defaults_raw["output_dir"]),
        max_agents=int(defaults_raw.get("max_agents", 9)),
        max_rounds=int(defaults_raw.get("max_rounds", 5)),
        models=[str(m) for m in defaults_raw["models"]],
    )
    if not defaults.models:
        raise ValueError("defaults.models must list at least one model")

    provider_raw = raw["provider"]
    provider = ProviderConfig(
        name=str(provider_raw.get("name", "openrouter")),
        base_url=str(provider_raw["base_url"]),
        api_key_env=str(provider_raw["api_key_env"]),
        timeout_sec=int(provider_raw["timeout_sec"]),
        max_tokens=int(provider_raw["max_tokens"]),
        temperature=float(provider_raw.get("temperature", 0.7)),
        referer=provider_raw.get("referer"),
        title=provider_raw.get("title"),
    )

    server_raw = raw.get("server") or {}
    server = ServerConfig(
        host=str(server_raw.get("host", "127.0.0.1")),
        port=int(server_raw.get("port", 3000)),
    )

    api_key_available = bool(os.environ.get(provider.api_key_env, "").strip())
    if api_key_available:
        logger.info("Provider available: %s", provider.name)
    else:
        logger.warning(
            "Provider %s has no API key: set %s in .env",
            provider.name,
            provider.api_key_env,
        )

    return AppConfig(
        defaults=defaults,
        provider=provider,
        server=server,
        personas=_load_personas(raw.get("personas")),
        api_key_available=api_key_available,
    )
