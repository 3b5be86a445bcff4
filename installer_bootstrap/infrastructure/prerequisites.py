"""Installation of the OS packages the installer needs to run."""

import logging
from typing import List, Mapping, Sequence

from ..application.domain import CommandRunner, HostProfile
from ..application.exceptions import PackageManagerBusy, PrerequisiteError

from .decorators import retry_on_package_manager_lock

DEB_FAMILIES = frozenset({"Debian", "Ubuntu"})

_LOCK_SIGNATURES = (
    "Could not get lock",
    "Unable to acquire the dpkg frontend lock",
    "Another app is currently holding the yum lock",
)


def package_group(profile: HostProfile) -> str:
    return "deb" if profile.family in DEB_FAMILIES else "rpm"


class PrerequisiteUpdater:
    """Finds missing prerequisite packages and installs only those."""

    def __init__(
        self, runner: CommandRunner, packages: Mapping[str, Sequence[str]]
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.runner = runner
        self.packages = packages

    def _is_installed(self, group: str, package: str) -> bool:
        if group == "deb":
            returncode, stdout, _ = self.runner.run(
                ["dpkg-query", "-W", "-f=${Status}", package]
            )
            return returncode == 0 and "install ok installed" in stdout

        returncode, _, _ = self.runner.run(["rpm", "-q", package])
        return returncode == 0

    def missing_packages(self, profile: HostProfile) -> List[str]:
        group = package_group(profile)
        return [
            package
            for package in self.packages.get(group, ())
            if not self._is_installed(group, package)
        ]

    def _run_package_manager(self, args: Sequence[str]):
        returncode, _, stderr = self.runner.run(args)
        if returncode == 0:
            return
        if any(signature in stderr for signature in _LOCK_SIGNATURES):
            raise PackageManagerBusy(f"{args[0]} is locked: {stderr.strip()}")
        raise PrerequisiteError(
            f"'{' '.join(args)}' failed with code {returncode}: {stderr.strip()}"
        )

    @retry_on_package_manager_lock
    def _install(self, group: str, packages: Sequence[str]):
        if group == "deb":
            self._run_package_manager(["apt-get", "update", "-q"])
            self._run_package_manager(
                ["apt-get", "install", "-y", "-q", *packages]
            )
        else:
            self._run_package_manager(["yum", "install", "-y", "-q", *packages])

    def update(self, profile: HostProfile) -> List[str]:
        """
        Installs whichever configured prerequisites are missing.

        Returns:
            The packages that were installed.

        Raises:
            PrerequisiteError: If the package manager fails.
        """

        missing = self.missing_packages(profile)
        if not missing:
            self.logger.info("All prerequisite packages are installed.")
            return []

        self.logger.info(f"Installing prerequisites: {', '.join(missing)}")
        self._install(package_group(profile), missing)
        return missing
