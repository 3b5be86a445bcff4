"""
Builds the Dynaconf settings object for the bootstrap installer.
This module is the single source of truth for all configuration.

Layers, lowest priority first: the packaged defaults, the settings persisted
by a previous run, then BOOTSTRAP_* environment variables.
"""

import os
from pathlib import Path
from dynaconf import Dynaconf

PACKAGE_ROOT = Path(__file__).parent

PERSISTED_SETTINGS_FILE = Path(
    os.environ.get(
        "BOOTSTRAP_PERSISTED_SETTINGS",
        "~/.config/installer-bootstrap/settings.toml",
    )
).expanduser()


def load_settings(persisted_settings_file: Path = PERSISTED_SETTINGS_FILE):
    return Dynaconf(
        root_path=PACKAGE_ROOT,
        settings_files=[
            "config/settings.toml",
            str(persisted_settings_file),
        ],
        envvar_prefix="BOOTSTRAP",
        merge_enabled=False,
        load_dotenv=False,
        environments=False,
    )
