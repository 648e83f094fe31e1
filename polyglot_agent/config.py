"""
Pipeline configuration.

Single source of truth for fetch and pacing settings. Values come from the
environment (optionally a ``.env`` file) and can be overridden per call,
which is how the CLI applies its flags.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv


DEFAULT_RELAY_URL = "https://api.allorigins.win/get"
DEFAULT_OUTPUT = "polyglot-generated-code.zip"


@dataclass(frozen=True)
class PipelineConfig:
    """Settings for one pipeline instance."""

    relay_url: str = DEFAULT_RELAY_URL
    fetch_timeout: float = 30.0          # seconds, per request
    sample_fallback: bool = True         # substitute SAMPLE_DOCUMENT on fetch failure
    pace_seconds: float = 0.0            # artificial delay between stages; 0 disables
    output_path: str = DEFAULT_OUTPUT

    def __str__(self) -> str:
        return (
            f"relay={self.relay_url} "
            f"timeout={self.fetch_timeout:g}s "
            f"fallback={'yes' if self.sample_fallback else 'no'} "
            f"pace={self.pace_seconds:g}s"
        )


# ──────────────────────────────────────────────────────────────────────
# Documentation pages offered as starting points by front ends.
# ──────────────────────────────────────────────────────────────────────

EXAMPLE_URLS: dict[str, dict[str, str]] = {
    "minecraft-protocol": {
        "name": "Minecraft Protocol",
        "url": "https://wiki.vg/Protocol",
        "description": "Complete Minecraft protocol documentation",
    },
    "http-spec": {
        "name": "HTTP/1.1 Specification",
        "url": "https://datatracker.ietf.org/doc/html/rfc2616",
        "description": "HTTP protocol specification",
    },
    "websocket-protocol": {
        "name": "WebSocket Protocol",
        "url": "https://datatracker.ietf.org/doc/html/rfc6455",
        "description": "WebSocket protocol specification",
    },
}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def load_config(
    relay_url: Optional[str] = None,
    fetch_timeout: Optional[float] = None,
    sample_fallback: Optional[bool] = None,
    pace_seconds: Optional[float] = None,
    output_path: Optional[str] = None,
) -> PipelineConfig:
    """Build a config from the environment, then apply explicit overrides.

    Resolution order for every setting:
    1. Keyword argument, when not None
    2. ``POLYGLOT_*`` environment variable (``.env`` is loaded first)
    3. Built-in default
    """
    load_dotenv()

    config = PipelineConfig(
        relay_url=os.getenv("POLYGLOT_RELAY_URL") or DEFAULT_RELAY_URL,
        fetch_timeout=_env_float("POLYGLOT_FETCH_TIMEOUT", 30.0),
        sample_fallback=_env_bool("POLYGLOT_SAMPLE_FALLBACK", True),
        pace_seconds=_env_float("POLYGLOT_PACE_SECONDS", 0.0),
        output_path=os.getenv("POLYGLOT_OUTPUT") or DEFAULT_OUTPUT,
    )

    overrides = {
        "relay_url": relay_url,
        "fetch_timeout": fetch_timeout,
        "sample_fallback": sample_fallback,
        "pace_seconds": pace_seconds,
        "output_path": output_path,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})
