"""
The core application service, orchestrating one bootstrap run.

A run classifies the host once, downloads the matching installer and hands
execution over to it. The host profile is threaded explicitly from the
classifier to the fetcher; nothing re-probes the machine afterwards.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Sequence

from .classifier import OsClassifier
from .domain import FetchPlan, HostProfile, source_list
from .fetcher import ArtifactFetcher

logger = logging.getLogger(__name__)


class BootstrapService:
    """Runs the detect, fetch and launch sequence."""

    def __init__(
        self,
        classifier: OsClassifier,
        fetcher: ArtifactFetcher,
        prerequisites,
        reporter,
        settings_store,
        launcher,
        privilege_check: Callable[[], None],
        default_tiers: Sequence[str],
        up_to_date_tier: str,
        public_source: str,
        override_source: Optional[str] = None,
        up_to_date_only: bool = False,
        reporter_enabled: bool = True,
        reporter_name: str = "update_reporter",
        reporter_destination: Optional[str] = None,
    ):
        """Initializes the service with its collaborators and fetch settings."""
        self.classifier = classifier
        self.fetcher = fetcher
        self.prerequisites = prerequisites
        self.reporter = reporter
        self.settings_store = settings_store
        self.launcher = launcher
        self.privilege_check = privilege_check
        self.default_tiers = list(default_tiers)
        self.up_to_date_tier = up_to_date_tier
        self.public_source = public_source
        self.override_source = override_source or None
        self.up_to_date_only = bool(up_to_date_only)
        self.reporter_enabled = reporter_enabled
        self.reporter_name = reporter_name
        self.reporter_destination = reporter_destination

    def plan(self, profile: HostProfile) -> FetchPlan:
        return FetchPlan.build(
            profile,
            default_tiers=self.default_tiers,
            up_to_date_tier=self.up_to_date_tier,
            public_source=self.public_source,
            override_source=self.override_source,
            up_to_date_only=self.up_to_date_only,
        )

    def _fetch_update_reporter(self):
        if not (self.reporter_enabled and self.reporter_destination):
            return
        destination = Path(self.reporter_destination)
        sources = source_list(self.public_source, self.override_source)
        if self.fetcher.fetch_auxiliary(self.reporter_name, sources, destination):
            self.reporter.attach_update_reporter(destination)

    def run(
        self,
        passthrough: Sequence[str] = (),
        update_prerequisites: bool = False,
        dry_run: bool = False,
    ) -> int:
        """
        Executes a full bootstrap run.

        Args:
            passthrough: Arguments appended to the installer command line.
            update_prerequisites: Install missing OS packages first.
            dry_run: Stop after the download instead of launching.

        Returns:
            The exit code of the installer, or 0 for a dry run.

        Raises:
            BootstrapError: Any failure; none is recovered here.
        """

        self.privilege_check()
        self._fetch_update_reporter()

        profile = self.classifier.classify()

        if update_prerequisites:
            self.prerequisites.update(profile)

        plan = self.plan(profile)
        logger.info(
            f"Fetching {plan.artifact_name}. Tiers: {list(plan.tiers)}, "
            f"Sources: {list(plan.sources)}"
        )

        outcome = self.fetcher.fetch(profile, plan.tiers, plan.sources)
        outcome.raise_for_failure(profile)

        for diagnostic in outcome.diagnostics:
            logger.debug(f"Recovered from failed attempt: {diagnostic}")

        self.settings_store.persist(self.override_source, self.up_to_date_only)

        if dry_run:
            logger.info(f"Dry run, not starting {outcome.path}")
            return 0

        arguments = self.launcher.assemble_arguments(
            outcome.tier, self.override_source, passthrough
        )
        return self.launcher.launch(outcome.path, arguments)
