"""
Core business exceptions for the bootstrap installer.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains. Every exception
knows how it is tagged in the error report.
"""

from typing import Any, Dict, List, Optional


class BootstrapError(Exception):
    """Base exception for all component-specific errors."""

    report_type = "error"

    def report_extra(self) -> Dict[str, Any]:
        """Type-specific fields added to the error report."""
        return {}


# --- Configuration Errors ---

class ConfigurationError(BootstrapError):
    """Raised for errors related to application configuration."""

    report_type = "configuration"


class DownloadMechanismUnavailable(ConfigurationError):
    """Raised when no transfer tool can be used on this host."""
    pass


class InsufficientPrivileges(ConfigurationError):
    """Raised when the installer is not started as root."""
    pass


# --- Classification Errors ---

class ClassificationError(BootstrapError):
    """Base class for failures to identify the host platform."""

    report_type = "os_detection"


class UndetectedKernel(ClassificationError):
    """Raised when the kernel is not a supported one."""
    pass


class UndetectedDistro(ClassificationError):
    """Raised when the distribution cannot be identified."""
    pass


class UnsupportedDistro(ClassificationError):
    """Raised when the distribution is identified but not supported."""

    report_type = "unsupported_os"

    def __init__(self, message: str, os_name: str):
        super().__init__(message)
        self.os_name = os_name

    def report_extra(self) -> Dict[str, Any]:
        return {"os_name": self.os_name}


# --- Infrastructure Errors ---

class InfrastructureError(BootstrapError):
    """Base class for errors related to external systems (network, tools)."""
    pass


class FetchError(InfrastructureError):
    """Base class for artifact download failures."""

    def __init__(self, message: str, diagnostics: Optional[List[str]] = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])

    def report_extra(self) -> Dict[str, Any]:
        return {"diagnostics": self.diagnostics}


class FetchNotFound(FetchError):
    """Raised when no source publishes an artifact for this host."""

    report_type = "unsupported_os"

    def __init__(
        self,
        message: str,
        os_name: str,
        diagnostics: Optional[List[str]] = None,
    ):
        super().__init__(message, diagnostics)
        self.os_name = os_name

    def report_extra(self) -> Dict[str, Any]:
        return {"os_name": self.os_name, **super().report_extra()}


class FetchTransient(FetchError):
    """Raised when the download failed for network or availability reasons."""

    report_type = "network"


class PrerequisiteError(InfrastructureError):
    """Raised when prerequisite packages cannot be installed."""

    report_type = "prerequisites"


class PackageManagerBusy(PrerequisiteError):
    """Raised when the package manager lock is held by another process."""
    pass


class HandoffError(InfrastructureError):
    """Raised when the downloaded installer cannot be started."""

    report_type = "handoff"
