"""
Host platform classification.

The classifier turns heterogeneous marker files into a canonical
HostProfile. Distribution detection is a list of strategies evaluated in
priority order; the first one whose marker file exists decides the outcome,
either with a (family, version) pair or with an explicit error.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence, Tuple

from .domain import HostProfile, SystemProbe
from .exceptions import (
    UndetectedDistro,
    UndetectedKernel,
    UnsupportedDistro,
)

SUPPORTED_KERNEL = "Linux"

DEBIAN_VERSION_FILE = "/etc/debian_version"
LSB_RELEASE_FILE = "/etc/lsb-release"
REDHAT_RELEASE_FILE = "/etc/redhat-release"

# Prefixes of the first word of /etc/redhat-release we publish payloads for.
RPM_FAMILIES = (
    "CentOS",
    "Red",
    "CloudLinux",
    "AlmaLinux",
    "Rocky",
    "Virtuozzo",
    "VzLinux",
)

# The artifact catalog files these targets under another name.
ALIASES: Dict[Tuple[str, str], Tuple[str, str]] = {
    ("RedHat", "el7"): ("CentOS", "7"),
    ("Virtuozzo", "7"): ("VZLinux", "7"),
}

_X86_PATTERN = re.compile(r"\d86")
_LEADING_INTEGER = re.compile(r"^\d+")
_NUMERIC_RUN = re.compile(r"\d+(?:\.\d+)*")

Fragment = Tuple[str, str]


def canonical_architecture(machine: str) -> str:
    """Collapses every x86 flavour (i386, i586, i686...) into 'i386'."""
    if _X86_PATTERN.search(machine):
        return "i386"
    return machine


def apply_alias(family: str, version: str) -> Fragment:
    return ALIASES.get((family, version), (family, version))


def _first_line(text: str) -> str:
    lines = text.strip().splitlines()
    return lines[0].strip() if lines else ""


def parse_key_values(text: str) -> Dict[str, str]:
    """Parses shell-style KEY=value lines, dropping surrounding quotes."""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip("\"'")
    return values


class DistroStrategy(ABC):
    """Detects one distribution family from its marker file."""

    marker: str

    @abstractmethod
    def detect(self, probe: SystemProbe) -> Optional[Fragment]:
        """
        Returns (family, version) when the marker file is present, None
        when this strategy does not apply.

        Raises:
            UndetectedDistro: If the version cannot be parsed.
            UnsupportedDistro: If the family is recognised but unsupported.
        """
        pass


class DebianStrategy(DistroStrategy):
    marker = DEBIAN_VERSION_FILE

    def detect(self, probe: SystemProbe) -> Optional[Fragment]:
        debian_version = probe.read_text(self.marker)
        if debian_version is None:
            return None

        lsb_release = probe.read_text(LSB_RELEASE_FILE)
        if lsb_release is not None:
            values = parse_key_values(lsb_release)
            family = values.get("DISTRIB_ID", "")
            version = values.get("DISTRIB_RELEASE", "")
        else:
            family = "Debian"
            version = _first_line(debian_version)

        if family == "Debian":
            match = _LEADING_INTEGER.match(version)
            if not match:
                raise UndetectedDistro(
                    f"Unable to detect Debian version from {version!r}"
                )
            return family, f"{match.group(0)}.0"

        if family == "Ubuntu":
            return family, version

        raise UnsupportedDistro(
            f"Unsupported distribution: {family} {version}".strip(),
            os_name=f"{family} {version}".strip(),
        )


class RedHatStrategy(DistroStrategy):
    marker = REDHAT_RELEASE_FILE

    def detect(self, probe: SystemProbe) -> Optional[Fragment]:
        release = probe.read_text(self.marker)
        if release is None:
            return None

        line = _first_line(release)
        words = line.split()
        family = words[0] if words else ""

        if not family.startswith(RPM_FAMILIES):
            raise UnsupportedDistro(
                f"Unsupported distribution: {line}", os_name=line
            )

        match = _NUMERIC_RUN.search(line)
        if not match:
            raise UndetectedDistro(f"Unable to detect version from {line!r}")
        major = match.group(0).split(".", 1)[0]

        if family.startswith("Red"):
            return "RedHat", f"el{major}"
        return family, major


DEFAULT_STRATEGIES: Sequence[DistroStrategy] = (
    DebianStrategy(),
    RedHatStrategy(),
)


class OsClassifier:
    """Builds the HostProfile of the machine behind a SystemProbe."""

    def __init__(
        self,
        probe: SystemProbe,
        strategies: Sequence[DistroStrategy] = DEFAULT_STRATEGIES,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.probe = probe
        self.strategies = strategies

    def _detect_distro(self) -> Fragment:
        for strategy in self.strategies:
            fragment = strategy.detect(self.probe)
            if fragment is not None:
                self.logger.debug(
                    f"{strategy.__class__.__name__} matched {strategy.marker}"
                )
                return fragment

        markers = ", ".join(strategy.marker for strategy in self.strategies)
        raise UndetectedDistro(
            f"Unable to detect the distribution, none of {markers} exist"
        )

    def classify(self) -> HostProfile:
        """
        Identifies the host platform.

        Returns:
            The canonical, aliased host profile.

        Raises:
            UndetectedKernel: If the kernel is not Linux.
            UndetectedDistro: If the distribution cannot be identified.
            UnsupportedDistro: If the distribution is not supported.
        """

        kernel = self.probe.kernel_name()
        if kernel != SUPPORTED_KERNEL:
            raise UndetectedKernel(f"Unsupported kernel: {kernel or 'unknown'}")

        architecture = canonical_architecture(self.probe.machine())
        family, version = apply_alias(*self._detect_distro())

        if not (family and version and architecture):
            raise UndetectedDistro(
                f"Incomplete platform detection: family={family!r}, "
                f"version={version!r}, architecture={architecture!r}"
            )

        profile = HostProfile(family, version, architecture)
        self.logger.info(
            f"Detected {profile.family} {profile.version} "
            f"({profile.architecture})"
        )
        return profile
