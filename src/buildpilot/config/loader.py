"""
Reading config.toml from disk.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict

from ..validation import handle_config_error, ErrorSeverity

logger = logging.getLogger(__name__)


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """
    Parse config.toml into raw section dictionaries.

    Raises:
        FileNotFoundError: If the file doesn't exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Reading configuration from {config_path}")
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        handle_config_error(
            error=e,
            context=f"parsing {config_path.name}",
            severity=ErrorSeverity.ERROR,
            reraise=True,
            logger=logger
        )
        raise
