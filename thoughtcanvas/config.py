"""Environment-driven settings for ThoughtCanvas."""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_LOG_LEVEL = "WARNING"

ENV_PREFIX = "THOUGHTCANVAS_"


@dataclass(frozen=True)
class Settings:
    """Runtime settings.

    The API key is read from GEMINI_API_KEY, falling back to API_KEY.
    Everything else uses the THOUGHTCANVAS_ prefix.
    """
    api_key: str = ""
    model_name: str = DEFAULT_MODEL
    log_level: str = DEFAULT_LOG_LEVEL
    skip_preflight: bool = False
    seed: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        seed_text = (env.get(ENV_PREFIX + "SEED") or "").strip()
        try:
            seed = int(seed_text) if seed_text else None
        except ValueError:
            seed = None

        level = (env.get(ENV_PREFIX + "LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            level = DEFAULT_LOG_LEVEL

        return cls(
            api_key=(env.get("GEMINI_API_KEY") or env.get("API_KEY") or "").strip(),
            model_name=(env.get(ENV_PREFIX + "MODEL") or DEFAULT_MODEL).strip(),
            log_level=level,
            skip_preflight=env.get(ENV_PREFIX + "SKIP_PREFLIGHT") == "1",
            seed=seed,
        )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


def configure_logging(settings: Settings):
    """Configure root logging once for the application."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
