"""
Tiny façade over :pymod:`logging` so the CLI can do

```python
from vodbot.logger import configure_logging
configure_logging(verbose=1, log_file=Path("pull.log"))
```

and end-users can tweak console verbosity via the environment:

```bash
export VODBOT_LOGLEVEL=DEBUG
```
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOG_FMT_FILE = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"
ENV_VAR = "VODBOT_LOGLEVEL"

log = logging.getLogger("vodbot")


def console_level(verbose: int) -> int:
    """Map ``-v`` counts to a level. ``VODBOT_LOGLEVEL`` wins when set."""
    env = os.getenv(ENV_VAR)
    if env:
        return getattr(logging, env.upper(), logging.INFO)
    return [logging.WARNING, logging.INFO, logging.DEBUG][min(max(verbose, 0), 2)]


def configure_logging(
    verbose: int = 0,
    *,
    log_file: Path | None = None,
    console: Console | None = None,
) -> None:
    """
    Initialise the ``vodbot`` logger once: a Rich console handler plus an
    optional plain-text file handler that always captures DEBUG.
    """
    if log.handlers:
        return

    level = console_level(verbose)
    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_level=True,
        show_path=False,
        markup=False,
    )
    console_handler.setLevel(level)
    log.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FMT_FILE, DATE_FMT))
        file_handler.setLevel(logging.DEBUG)
        log.addHandler(file_handler)

    log.setLevel(logging.DEBUG if log_file else level)
    log.propagate = False

    # urllib3 is chatty at DEBUG; keep it at WARNING unless explicitly asked
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose > 2 else logging.WARNING)
