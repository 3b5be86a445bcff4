"""
Shared pytest fixtures for installer_bootstrap tests.
"""

from pathlib import Path

import pytest

from installer_bootstrap.application.domain import HostProfile


@pytest.fixture
def system_root(tmp_path) -> Path:
    """An empty fake filesystem root with an /etc directory."""
    root = tmp_path / "root"
    (root / "etc").mkdir(parents=True)
    return root


@pytest.fixture
def write_file(system_root):
    """
    Write a system file below the fake root.

    Usage:
        write_file("/etc/debian_version", "12.5\n")
    """

    def _write(path: str, content: str) -> Path:
        target = system_root / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
        return target

    return _write


@pytest.fixture
def ubuntu_profile() -> HostProfile:
    return HostProfile("Ubuntu", "22.04", "x86_64")


@pytest.fixture
def destination(tmp_path) -> Path:
    return tmp_path / "out" / "parallels_installer"
