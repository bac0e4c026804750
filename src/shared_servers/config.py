"""Configuration for the shared server manager."""

import json
import logging
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class SharedServerConfig(BaseModel):
    """Behavior settings for SharedServerManager.

    Only covers how the manager treats its servers. How a server is started
    is up to the builder passed to ``acquire``.
    """

    shutdown_errors: Literal["raise", "log"] = Field(
        default="raise",
        description="Whether a failing server shutdown propagates or is only logged",
    )
    warn_on_builder_mismatch: bool = Field(
        default=True,
        description="Log a warning when a shared server is reused with a different builder",
    )

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> "SharedServerConfig":
        """Load configuration from a JSON file, or defaults if it does not exist.

        Args:
            path: Path to a JSON object with any of the config fields

        Raises:
            ValueError: If the file exists but cannot be parsed or validated
        """
        if path is None:
            return cls()

        config_path = Path(path)
        if not config_path.exists():
            logger.debug(f"No config at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, "r") as f:
                data = json.load(f)
            return cls(**data)
        except Exception as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")
