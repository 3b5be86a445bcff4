"""
Transfer mechanisms able to download the installer.

Mechanisms are ranked; the first one available on the host is selected
once per run. Every mechanism reports a structured TransferResult so that
failures are classified by HTTP status rather than by tool output wording.
"""

import re
import shutil
from pathlib import Path
from typing import Mapping, Optional, Sequence

import httpx
from tqdm import tqdm

from ..application.domain import CommandRunner, Transfer, TransferResult
from ..application.exceptions import (
    ConfigurationError,
    DownloadMechanismUnavailable,
)

from .base_transfer import BaseTransfer

_WGET_STATUS = re.compile(r"HTTP/\S+\s+(\d{3})")


class HttpxTransfer(BaseTransfer):
    """Downloads in-process over HTTP(S) with a progress bar."""

    name = "httpx"

    def __init__(self, client: httpx.Client, timeout: float, chunk_size: int):
        """Initializes the transfer adapter."""
        super().__init__()
        self.client = client
        self.timeout = timeout
        self.chunk_size = chunk_size

    def is_available(self) -> bool:
        return True

    def _write_with_progress(
        self, response: httpx.Response, target_file: Path, desc: str
    ) -> Optional[str]:
        """Streams the body to a file, returning an error on a short read."""
        total_size = int(response.headers.get("Content-Length", 0))

        with open(target_file, "wb") as f, tqdm(
            total=total_size, unit="B", unit_scale=True, desc=desc
        ) as progress_bar:
            for chunk in response.iter_bytes(self.chunk_size):
                f.write(chunk)
                progress_bar.update(len(chunk))

        if total_size != 0 and progress_bar.n != total_size:
            return f"Size mismatch: {progress_bar.n} != {total_size}"
        return None

    def _stream_from_network(self, url: str, target_file: Path) -> TransferResult:
        """Manage the network request and the streaming process."""
        with self.client.stream("GET", url, timeout=self.timeout) as response:
            if response.is_error:
                return TransferResult(
                    ok=False,
                    status_code=response.status_code,
                    diagnostic=(
                        f"HTTP {response.status_code} "
                        f"{response.reason_phrase}"
                    ),
                )

            error = self._write_with_progress(
                response, target_file, url.rsplit("/", 1)[-1]
            )
            return TransferResult(
                ok=error is None,
                status_code=response.status_code,
                diagnostic=error or "",
            )

    def get(self, url: str, destination: Path) -> TransferResult:
        try:
            with self._atomic_target(destination) as part_path:
                result = self._stream_from_network(url, part_path)
                if result.ok:
                    part_path.replace(destination)
                return self._log_result(url, destination, result)
        except httpx.HTTPError as e:
            result = TransferResult(ok=False, diagnostic=f"{type(e).__name__}: {e}")
            return self._log_result(url, destination, result)
        except OSError as e:
            result = TransferResult(ok=False, diagnostic=f"Unable to write file: {e}")
            return self._log_result(url, destination, result)


class CommandTransfer(BaseTransfer):
    """Base class for mechanisms backed by an external download tool."""

    executable: str

    def __init__(self, runner: CommandRunner):
        super().__init__()
        self.runner = runner

    @property
    def name(self) -> str:
        return self.executable

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    def _command(self, url: str, target_file: Path) -> Sequence[str]:
        raise NotImplementedError

    def _result(self, returncode: int, stdout: str, stderr: str) -> TransferResult:
        raise NotImplementedError

    def get(self, url: str, destination: Path) -> TransferResult:
        try:
            with self._atomic_target(destination) as part_path:
                result = self._result(
                    *self.runner.run(self._command(url, part_path))
                )
                if result.ok:
                    part_path.replace(destination)
                return self._log_result(url, destination, result)
        except OSError as e:
            result = TransferResult(ok=False, diagnostic=f"{self.executable}: {e}")
            return self._log_result(url, destination, result)


class CurlTransfer(CommandTransfer):
    executable = "curl"

    def _command(self, url: str, target_file: Path) -> Sequence[str]:
        return [
            self.executable, "-sSL",
            "-o", str(target_file),
            "-w", "%{http_code}",
            url,
        ]

    def _result(self, returncode: int, stdout: str, stderr: str) -> TransferResult:
        code = stdout.strip()[-3:]
        status_code = int(code) if code.isdigit() and code != "000" else None

        if returncode != 0:
            return TransferResult(False, status_code, stderr.strip())
        if status_code is None or status_code >= 400:
            return TransferResult(False, status_code, f"HTTP {code}")
        return TransferResult(True, status_code)


class WgetTransfer(CommandTransfer):
    executable = "wget"

    def _command(self, url: str, target_file: Path) -> Sequence[str]:
        return [self.executable, "-S", "-O", str(target_file), url]

    def _result(self, returncode: int, stdout: str, stderr: str) -> TransferResult:
        statuses = _WGET_STATUS.findall(stderr)
        status_code = int(statuses[-1]) if statuses else None

        if returncode != 0:
            return TransferResult(False, status_code, stderr.strip())
        return TransferResult(True, status_code)


def select_transfer(
    mechanisms: Sequence[str], registry: Mapping[str, Transfer]
) -> Transfer:
    """
    Picks the first available mechanism in ranking order.

    Raises:
        ConfigurationError: If a ranked mechanism is unknown.
        DownloadMechanismUnavailable: If no ranked mechanism is available.
    """

    for name in mechanisms:
        if name not in registry:
            raise ConfigurationError(f"Unknown transfer mechanism: {name}")
        transfer = registry[name]
        if transfer.is_available():
            return transfer

    raise DownloadMechanismUnavailable(
        f"None of the download tools are available: {', '.join(mechanisms)}"
    )
