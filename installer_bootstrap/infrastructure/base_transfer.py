"""Base class for transfer mechanisms."""

import contextlib
import logging
from pathlib import Path
from typing import Generator

from ..application.domain import Transfer, TransferResult


class BaseTransfer(Transfer):
    """A base transfer that writes downloads atomically."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def _log_result(
        self, url: str, destination: Path, result: TransferResult
    ) -> TransferResult:
        """Logs the outcome of a transfer and passes the result through."""
        if result.ok:
            self.logger.info(f"Finished downloading {destination.name}")
        else:
            self.logger.debug(
                f"Download of {url} failed "
                f"(status {result.status_code}): {result.diagnostic}"
            )
        return result

    @contextlib.contextmanager
    def _atomic_target(self, destination: Path) -> Generator[Path, None, None]:
        """Provides a temporary '.part' path and ensures cleanup."""
        part_path = destination.with_name(destination.name + ".part")
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            yield part_path
        finally:
            part_path.unlink(missing_ok=True)
