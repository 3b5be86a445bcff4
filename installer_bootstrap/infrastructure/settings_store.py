"""Persistence of the settings a later run should reuse."""

import logging
from pathlib import Path
from typing import Optional

from dynaconf.loaders import toml_loader

from ..application.exceptions import ConfigurationError


class SettingsStore:
    """Writes the effective fetch settings to the persisted settings file."""

    def __init__(self, path: str):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.path = Path(path).expanduser()

    def persist(self, override_source: Optional[str], up_to_date_only: bool):
        """
        Merges the fetch settings into the persisted TOML file.

        Raises:
            ConfigurationError: If the file cannot be written.
        """

        data = {
            "fetch": {
                # Merged into the packaged [fetch] section on load.
                "dynaconf_merge": True,
                "override_source": override_source or "",
                "up_to_date_only": bool(up_to_date_only),
            }
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            toml_loader.write(str(self.path), data, merge=True)
        except OSError as e:
            raise ConfigurationError(
                f"Unable to save settings to {self.path}: {e}"
            ) from e
        self.logger.debug(f"Saved settings to {self.path}")
