"""ThoughtCanvas launcher.

Provides a stable entry point that configures logging and runs preflight
checks before importing GTK-related modules, which gives clearer error
messages on new systems.
"""

from __future__ import annotations

import logging

from thoughtcanvas.config import Settings, configure_logging

logger = logging.getLogger(__name__)


def main() -> int:
    settings = Settings.from_env()
    configure_logging(settings)

    if not settings.skip_preflight:
        from thoughtcanvas.preflight import run_preflight_or_die

        run_preflight_or_die(require_display=True, check_deps=True)

    from thoughtcanvas.app import main as app_main

    logger.info("Starting ThoughtCanvas (model=%s, api key %s)",
                settings.model_name, "set" if settings.has_api_key else "missing")
    return int(app_main(settings))


if __name__ == "__main__":
    raise SystemExit(main())
