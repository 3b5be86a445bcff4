"""Resilient acquisition of the platform installer artifact."""

import logging
import stat
from pathlib import Path
from typing import List, Optional, Sequence

from .domain import (
    FailureKind,
    FetchAttempt,
    FetchOutcome,
    HostProfile,
    Transfer,
)

NOT_FOUND_STATUSES = frozenset({404})

# Owner-only read, write and execute.
EXECUTABLE_MODE = stat.S_IRWXU


def classify_failure(attempt: FetchAttempt) -> FailureKind:
    """Maps a failed attempt to the terminal failure it implies."""
    if attempt.status_code in NOT_FOUND_STATUSES:
        return FailureKind.NOT_FOUND
    return FailureKind.TRANSIENT


class ArtifactFetcher:
    """Downloads the installer by walking the tier x source matrix."""

    def __init__(self, transfer: Transfer, destination: Path):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.transfer = transfer
        self.destination = Path(destination)

    def _clear_destination(self, destination: Path) -> Optional[str]:
        """Removes a previous download, returning an error message on failure."""
        try:
            destination.unlink(missing_ok=True)
        except OSError as e:
            self.logger.warning(f"Unable to remove {destination}: {e}")
            return f"Unable to remove {destination}: {e}"
        return None

    def _make_executable(self, destination: Path) -> Optional[str]:
        try:
            destination.chmod(EXECUTABLE_MODE)
        except OSError as e:
            return f"Unable to set permissions on {destination}: {e}"
        return None

    def _attempt(self, url: str, tier: str, source: str, destination: Path):
        """Runs one transfer, returning None on success or the failed attempt."""
        self.logger.info(f"Downloading {url} using {self.transfer.name}...")
        result = self.transfer.get(url, destination)
        status_code, diagnostic = result.status_code, result.diagnostic
        if result.ok:
            diagnostic = self._make_executable(destination)
            if diagnostic is None:
                return None

        attempt = FetchAttempt(
            tier=tier,
            source=source,
            url=url,
            status_code=None if result.ok else status_code,
            diagnostic=diagnostic.strip(),
        )
        self.logger.debug(f"Attempt failed: {attempt.describe()}")
        return attempt

    def fetch(
        self,
        profile: HostProfile,
        tiers: Sequence[str],
        sources: Sequence[str],
    ) -> FetchOutcome:
        """
        Downloads the installer matching a host profile.

        Tiers are tried outer, sources inner, and the first successful
        transfer ends the search. Only the last failure decides how an
        exhausted search is classified; earlier ones are kept for reporting.

        Args:
            profile: The classified host.
            tiers: Version tiers, most preferred first.
            sources: Base URLs, most preferred first.

        Returns:
            The outcome of the search. Failures are not raised here; use
            FetchOutcome.raise_for_failure().
        """

        artifact_name = profile.artifact_name
        destination = self.destination

        # A destination that cannot be cleared cannot be written either.
        error = self._clear_destination(destination)
        if error is not None:
            attempt = FetchAttempt(
                tier="",
                source="",
                url=str(destination),
                status_code=None,
                diagnostic=error,
            )
            return FetchOutcome(failure=FailureKind.TRANSIENT, attempts=(attempt,))

        attempts: List[FetchAttempt] = []
        for tier in tiers:
            for source in sources:
                url = f"{source.rstrip('/')}/{tier}/{artifact_name}"
                failed = self._attempt(url, tier, source, destination)
                if failed is None:
                    self.logger.info(
                        f"Fetched {artifact_name} from {source} ({tier})"
                    )
                    return FetchOutcome(
                        path=destination,
                        tier=tier,
                        source=source,
                        attempts=tuple(attempts),
                    )
                attempts.append(failed)

        if not attempts:
            raise ValueError("fetch requires at least one tier and one source")

        failure = classify_failure(attempts[-1])
        self.logger.debug(
            f"All {len(attempts)} attempts for {artifact_name} failed, "
            f"last failure is {failure.value}"
        )
        return FetchOutcome(failure=failure, attempts=tuple(attempts))

    def fetch_auxiliary(
        self, name: str, sources: Sequence[str], destination: Path
    ) -> bool:
        """
        Downloads an optional helper from the first source that has it.

        Failure is not an error: the caller carries on without the helper.
        """

        destination = Path(destination)
        if self._clear_destination(destination) is not None:
            self.logger.warning(f"Skipping {name}, continuing without it")
            return False

        for source in sources:
            url = f"{source.rstrip('/')}/{name}"
            if self._attempt(url, "", source, destination) is None:
                return True

        self.logger.warning(f"Unable to download {name}, continuing without it")
        return False
