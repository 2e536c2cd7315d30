"""
Configuration - Server settings from GRIDRACE_* environment variables.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import os

from .engine_core.state import Ruleset


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class Settings:
    """
    Runtime settings.

    Delays are seconds. Tests construct this directly with zero delays.
    """
    env: str = "development"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    register_delay: float = 1.0
    lobby_removal_timeout: float = 60.0
    vote_delay: float = 30.0
    vote_duration: float = 5.0
    max_players: int = 8
    ruleset: Ruleset = Ruleset.LEGACY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        origins = [o.strip() for o in os.getenv("GRIDRACE_ALLOWED_ORIGINS", "*").split(",") if o.strip()]
        ruleset_name = os.getenv("GRIDRACE_RULESET", Ruleset.LEGACY.value).strip().lower()
        try:
            ruleset = Ruleset(ruleset_name)
        except ValueError:
            raise ValueError(f"GRIDRACE_RULESET must be 'legacy' or 'token', got {ruleset_name!r}")
        max_players = int(_float_env("GRIDRACE_MAX_PLAYERS", 8))
        if not 2 <= max_players <= 8:
            raise ValueError(f"GRIDRACE_MAX_PLAYERS must be between 2 and 8, got {max_players}")

        return cls(
            env=os.getenv("GRIDRACE_ENV", "development"),
            allowed_origins=origins or ["*"],
            register_delay=_float_env("GRIDRACE_REGISTER_DELAY", 1.0),
            lobby_removal_timeout=_float_env("GRIDRACE_LOBBY_REMOVAL_TIMEOUT", 60.0),
            vote_delay=_float_env("GRIDRACE_VOTE_DELAY", 30.0),
            vote_duration=_float_env("GRIDRACE_VOTE_DURATION", 5.0),
            max_players=max_players,
            ruleset=ruleset,
            log_level=os.getenv("GRIDRACE_LOG_LEVEL", "INFO").upper(),
        )
