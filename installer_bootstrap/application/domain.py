"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the bootstrap logic operates on, together with the ports
that infrastructure adapters implement.
"""

import dataclasses
import enum
from pathlib import Path

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

from .exceptions import FetchNotFound, FetchTransient

ARTIFACT_PREFIX = "parallels_installer"
ARTIFACT_DELIMITER = "_"


def source_list(
    public_source: str, override_source: Optional[str] = None
) -> Tuple[str, ...]:
    """Orders the sources to try: the override first, then the public one."""
    sources = []
    for source in (override_source, public_source):
        source = (source or "").rstrip("/")
        if source and source not in sources:
            sources.append(source)
    return tuple(sources)


# --- Domain Models ---

@dataclasses.dataclass(frozen=True)
class HostProfile:
    """The canonical (family, version, architecture) triple of the host."""

    family: str
    version: str
    architecture: str

    def __post_init__(self):
        for field in dataclasses.fields(self):
            if not getattr(self, field.name):
                raise ValueError(f"HostProfile requires a non-empty {field.name}")

    @property
    def artifact_name(self) -> str:
        return ARTIFACT_DELIMITER.join(
            (ARTIFACT_PREFIX, self.family, self.version, self.architecture)
        )


@dataclasses.dataclass(frozen=True)
class FetchPlan:
    """
    What to download and where to look for it.

    Tiers and sources are tried in the given order, tiers outer and
    sources inner. Both lists must be non-empty.
    """

    artifact_name: str
    tiers: Tuple[str, ...]
    sources: Tuple[str, ...]

    def __post_init__(self):
        if not self.tiers:
            raise ValueError("FetchPlan requires at least one tier")
        if not self.sources:
            raise ValueError("FetchPlan requires at least one source")

    @classmethod
    def build(
        cls,
        profile: HostProfile,
        default_tiers: Sequence[str],
        up_to_date_tier: str,
        public_source: str,
        override_source: Optional[str] = None,
        up_to_date_only: bool = False,
    ) -> "FetchPlan":
        """Derives the plan for a host from the configured tiers and sources."""

        tiers = (up_to_date_tier,) if up_to_date_only else tuple(default_tiers)

        return cls(
            artifact_name=profile.artifact_name,
            tiers=tiers,
            sources=source_list(public_source, override_source),
        )


@dataclasses.dataclass(frozen=True)
class TransferResult:
    """Structured result of a single transfer, independent of the tool used."""

    ok: bool
    status_code: Optional[int] = None
    diagnostic: str = ""


@dataclasses.dataclass(frozen=True)
class FetchAttempt:
    """A failed (tier, source) transfer attempt."""

    tier: str
    source: str
    url: str
    status_code: Optional[int]
    diagnostic: str

    def describe(self) -> str:
        status = self.status_code if self.status_code is not None else "n/a"
        return f"{self.url} (status {status}): {self.diagnostic}"


class FailureKind(enum.Enum):
    NOT_FOUND = "not-found"
    TRANSIENT = "transient"


@dataclasses.dataclass(frozen=True)
class FetchOutcome:
    """
    Result of running a fetch plan.

    A successful outcome carries the artifact path and the (tier, source)
    that produced it. A failed outcome carries the classification of the
    last attempt. Both carry every failed attempt for reporting.
    """

    path: Optional[Path] = None
    tier: Optional[str] = None
    source: Optional[str] = None
    failure: Optional[FailureKind] = None
    attempts: Tuple[FetchAttempt, ...] = ()

    @property
    def ok(self) -> bool:
        return self.failure is None and self.path is not None

    @property
    def diagnostics(self) -> List[str]:
        return [attempt.describe() for attempt in self.attempts]

    def raise_for_failure(self, profile: HostProfile):
        """Raises the typed fetch error matching the failure classification."""
        if self.ok:
            return

        if self.failure is FailureKind.NOT_FOUND:
            raise FetchNotFound(
                f"No installer is published for {profile.family} "
                f"{profile.version} ({profile.architecture})",
                os_name=f"{profile.family} {profile.version}",
                diagnostics=self.diagnostics,
            )

        raise FetchTransient(
            "Unable to download the installer, "
            "please check your network connection and try again later",
            diagnostics=self.diagnostics,
        )


# --- Ports (Interfaces) ---

class SystemProbe(ABC):
    """A port for read-only inspection of the local machine."""

    @abstractmethod
    def kernel_name(self) -> str:
        """Returns the kernel name, e.g. 'Linux'."""
        pass

    @abstractmethod
    def machine(self) -> str:
        """Returns the raw CPU architecture reported by the kernel."""
        pass

    @abstractmethod
    def read_text(self, path: str) -> Optional[str]:
        """Returns the content of a system file, or None if it is absent."""
        pass


class Transfer(ABC):
    """A port for any mechanism able to download a URL to a file."""

    name: str = "transfer"

    @abstractmethod
    def is_available(self) -> bool:
        """Tells whether the mechanism can be used on this host."""
        pass

    @abstractmethod
    def get(self, url: str, destination: Path) -> TransferResult:
        """Downloads url to destination. Never raises for transfer errors."""
        pass


class CommandRunner(ABC):
    """A port for running external commands."""

    @abstractmethod
    def run(
        self, args: Sequence[str], input: Optional[str] = None
    ) -> Tuple[int, str, str]:
        """Runs a command and returns (returncode, stdout, stderr)."""
        pass
