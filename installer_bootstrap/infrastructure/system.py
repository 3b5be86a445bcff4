"""
Infrastructure adapters for talking to the local operating system.
"""

import logging
import os
import platform
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from ..application.domain import CommandRunner, SystemProbe
from ..application.exceptions import HandoffError, InsufficientPrivileges


class LocalSystemProbe(SystemProbe):
    """
    Reads kernel facts from `platform` and marker files from disk.

    System file paths are resolved below `root`, which lets tests point the
    probe at a fake filesystem.
    """

    def __init__(
        self,
        root: str = "/",
        uname: Callable[[], Tuple[str, str]] = lambda: (
            platform.system(),
            platform.machine(),
        ),
    ):
        self.root = Path(root)
        self.uname = uname

    def kernel_name(self) -> str:
        return self.uname()[0]

    def machine(self) -> str:
        return self.uname()[1]

    def read_text(self, path: str) -> Optional[str]:
        file_path = self.root / path.lstrip("/")
        if not file_path.is_file():
            return None
        return file_path.read_text(encoding="utf-8", errors="replace")


class SubprocessRunner(CommandRunner):
    """Runs commands with subprocess, capturing their output."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def run(
        self, args: Sequence[str], input: Optional[str] = None
    ) -> Tuple[int, str, str]:
        self.logger.debug(f"Running {' '.join(args)}")
        completed = subprocess.run(
            list(args),
            input=input,
            capture_output=True,
            text=True,
            check=False,
        )
        return completed.returncode, completed.stdout, completed.stderr


def ensure_privileges(
    require_root: bool = True, geteuid: Callable[[], int] = os.geteuid
):
    """
    Raises:
        InsufficientPrivileges: If root is required and we are not root.
    """
    if require_root and geteuid() != 0:
        raise InsufficientPrivileges(
            "You must have superuser privileges to install the product"
        )


class Launcher:
    """Hands execution over to the downloaded installer."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def assemble_arguments(
        self,
        tier: Optional[str],
        override_source: Optional[str],
        passthrough: Sequence[str],
    ) -> List[str]:
        arguments = []
        if override_source:
            arguments += ["--source", override_source]
        if tier:
            arguments += ["--tier", tier]
        return arguments + list(passthrough)

    def launch(self, path: Path, arguments: Sequence[str]) -> int:
        """
        Runs the installer in the foreground and returns its exit code.

        Raises:
            HandoffError: If the installer cannot be started.
        """

        command = [str(path), *arguments]
        self.logger.info(f"Starting {' '.join(command)}")
        try:
            return subprocess.call(command)
        except OSError as e:
            raise HandoffError(f"Unable to start {path}: {e}") from e
