"""``vodbot init`` – create the default directories and config file."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from ..config import Config, default_config_path, save_config
from ..sidecar import ensure_dir

logger = logging.getLogger(__name__)


def run(config_path: Optional[Path], overwrite_confirm: bool, console: Console) -> bool:
    """Returns ``False`` when the user declined to overwrite an existing config."""
    path = config_path or default_config_path()
    config = Config()

    console.print(f"Creating default config file at `{path}`...")
    if path.exists() and not overwrite_confirm:
        if not typer.confirm("A config file already exists... Are you sure you want to continue?"):
            console.print("Exiting...")
            return False

    for directory in config.directories.all():
        ensure_dir(directory)
        logger.debug("created %s", directory)
    save_config(config, path)

    console.print("Done! You still need to add channels to the config yourself.")
    return True
