"""Configuration loading.

Settings come from a YAML file (``RELAY_CONFIG``, default /app/config.yaml)
with environment variables taking precedence for secrets and endpoints.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from smsrelay.errors import ConfigurationError

log = logging.getLogger(__name__)

CONFIG_PATH = Path(os.getenv("RELAY_CONFIG", "/app/config.yaml"))


def load_config(path: Path = None) -> dict:
    """Load YAML config, returning an empty config if the file is missing."""
    path = Path(path or CONFIG_PATH)
    if not path.exists():
        log.warning(f"Config file {path} not found, using defaults")
        return {}
    with open(path) as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return config


def apply_env_overrides(config: dict) -> dict:
    """Overlay environment variables onto a loaded config dict."""
    llm_conf = config.setdefault("llm", {})
    if os.getenv("LLM_PROVIDER"):
        llm_conf["provider"] = os.getenv("LLM_PROVIDER")
    if os.getenv("OLLAMA_URL"):
        llm_conf.setdefault("ollama", {})["url"] = os.getenv("OLLAMA_URL")
    if os.getenv("OLLAMA_MODEL"):
        llm_conf.setdefault("ollama", {})["model"] = os.getenv("OLLAMA_MODEL")
    if os.getenv("OPENROUTER_API_KEY"):
        llm_conf.setdefault("openrouter", {})["api_key"] = os.getenv("OPENROUTER_API_KEY")
    if os.getenv("OPENROUTER_MODEL"):
        llm_conf.setdefault("openrouter", {})["model"] = os.getenv("OPENROUTER_MODEL")

    if os.getenv("ALLOWED_NUMBERS"):
        numbers = [n.strip() for n in os.getenv("ALLOWED_NUMBERS").split(",") if n.strip()]
        config.setdefault("allowlist", {})["numbers"] = numbers

    if os.getenv("SUPPORTS_EMOJI"):
        supports = os.getenv("SUPPORTS_EMOJI").lower() in ("true", "1", "yes")
        config.setdefault("formatting", {})["supports_emoji"] = supports
    return config


@dataclass(frozen=True)
class RelaySettings:
    """Limits applied to every relay task. Immutable per task."""
    max_segment_length: int = 150
    max_segments: int = 3
    inter_segment_delay: float = 2.0
    dedup_capacity: int = 100
    supports_emoji: bool = False
    flatten_newlines: bool = True

    def __post_init__(self):
        for name in ("max_segment_length", "max_segments", "dedup_capacity"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.inter_segment_delay < 0:
            raise ConfigurationError(
                f"inter_segment_delay must not be negative, got {self.inter_segment_delay!r}"
            )

    @classmethod
    def from_config(cls, config: dict) -> "RelaySettings":
        relay_conf = config.get("relay", {}) or {}
        fmt_conf = config.get("formatting", {}) or {}
        try:
            return cls(
                max_segment_length=int(relay_conf.get("max_segment_length", cls.max_segment_length)),
                max_segments=int(relay_conf.get("max_segments", cls.max_segments)),
                inter_segment_delay=float(relay_conf.get("inter_segment_delay_seconds", cls.inter_segment_delay)),
                dedup_capacity=int(relay_conf.get("dedup_capacity", cls.dedup_capacity)),
                supports_emoji=bool(fmt_conf.get("supports_emoji", cls.supports_emoji)),
                flatten_newlines=bool(fmt_conf.get("flatten_newlines", cls.flatten_newlines)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid relay settings: {e}") from e
