"""Runtime settings read from ``SUPERXO_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .codes import CODE_STYLES
from .game import VARIANTS

ENV_PREFIX = "SUPERXO_"
GRACE_SECONDS = 5 * 60
IDLE_SECONDS = 30 * 60

_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000
    variant: str = "super"
    code_style: str = "alnum"
    # False selects the simple mode: no grace period, no stale-slot reuse.
    reconnect: bool = True
    grace_seconds: float = GRACE_SECONDS
    idle_seconds: float = IDLE_SECONDS
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.variant not in VARIANTS:
            raise ValueError(
                f"Unsupported variant {self.variant!r}. "
                f"Choose one of {', '.join(VARIANTS)}."
            )
        if self.code_style not in CODE_STYLES:
            raise ValueError(
                f"Unsupported code style {self.code_style!r}. "
                f"Choose one of {', '.join(CODE_STYLES)}."
            )
        if self.grace_seconds < 0:
            raise ValueError("Grace period must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            return env.get(ENV_PREFIX + name, default).strip()

        return cls(
            host=get("HOST", cls.host),
            port=int(get("PORT", str(cls.port))),
            variant=get("VARIANT", cls.variant).lower(),
            code_style=get("CODE_STYLE", cls.code_style).lower(),
            reconnect=get("RECONNECT", "1").lower() not in _FALSY,
            grace_seconds=float(get("GRACE_SECONDS", str(cls.grace_seconds))),
            idle_seconds=float(get("IDLE_SECONDS", str(cls.idle_seconds))),
            log_level=get("LOG_LEVEL", cls.log_level).upper(),
        )
