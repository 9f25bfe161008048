import logging
import os
from pathlib import Path

from dotenv import dotenv_values

_ENV_PATH = Path(".env").resolve()
_ENV_EXAMPLE_PATH = Path(".env.example").resolve()

_loaded_once: bool = False

_logger = logging.getLogger(__name__)


def load_env(force: bool = False) -> None:
    """Load environment variables from dotenv files.

    Precedence (highest to lowest):
    - the live process environment
    - .env
    - .env.example (fills missing keys only)

    Parsing is handled by python-dotenv. In test mode (ENV=test or
    PYTEST_RUNNING set) the files are skipped entirely so tests only see
    what they set themselves.
    """
    global _loaded_once

    if _loaded_once and not force:
        return

    test_mode = os.getenv("ENV", "").strip().lower() == "test" or bool(
        os.getenv("PYTEST_RUNNING")
    )
    if test_mode:
        _loaded_once = True
        return

    applied = 0
    for path in (_ENV_PATH, _ENV_EXAMPLE_PATH):
        if not path.exists():
            continue
        for key, value in dotenv_values(path).items():
            if value is None or key in os.environ:
                continue
            os.environ[key] = value
            applied += 1

    _loaded_once = True
    _logger.debug("env loaded", extra={"meta": {"applied": applied}})
