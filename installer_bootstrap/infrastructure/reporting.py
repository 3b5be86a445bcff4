"""
Structured error reports.

Reports are validated by a Pydantic model and appended to a log file as one
JSON object per line. When the auxiliary update reporter was downloaded, the
same record is handed to it on stdin.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..application.domain import CommandRunner
from ..application.exceptions import BootstrapError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorReport(BaseModel):
    """A single failure record as written to the report log."""

    message: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: str
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: BootstrapError) -> "ErrorReport":
        return cls(
            message=str(error),
            type=error.report_type,
            extra=error.report_extra(),
        )


class ErrorReporter:
    """Emits error reports to the configured sinks."""

    def __init__(self, runner: CommandRunner, log_path: Optional[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.runner = runner
        self.log_path = Path(log_path) if log_path else None
        self.update_reporter: Optional[Path] = None

    def attach_update_reporter(self, path: Path):
        self.update_reporter = path

    def _append(self, line: str):
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def _forward(self, line: str):
        returncode, _, stderr = self.runner.run(
            [str(self.update_reporter), "--report"], input=line
        )
        if returncode != 0:
            self.logger.warning(
                f"Update reporter exited with {returncode}: {stderr.strip()}"
            )

    def report(self, error: BootstrapError) -> ErrorReport:
        """
        Records a terminal error.

        Sink failures are logged and swallowed so that they never hide the
        error being reported.
        """

        record = ErrorReport.from_error(error)
        line = record.model_dump_json()

        if self.log_path is not None:
            try:
                self._append(line)
            except OSError as e:
                self.logger.warning(f"Unable to write {self.log_path}: {e}")

        if self.update_reporter is not None:
            try:
                self._forward(line)
            except OSError as e:
                self.logger.warning(f"Unable to run update reporter: {e}")

        return record
