"""
Test fixtures package for installer_bootstrap tests.

Provides fake adapters that stand in for the network, the filesystem
probes and external commands.
"""

from tests.fixtures.fakes import (
    FakeRunner,
    ScriptedTransfer,
    make_probe,
    not_found,
    refused,
)
