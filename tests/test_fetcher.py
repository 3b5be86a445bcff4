"""
Tests for the tier x source fetch matrix and failure classification.
"""

import logging
import stat

import pytest

from installer_bootstrap.application.domain import (
    FailureKind,
    FetchAttempt,
    FetchPlan,
    HostProfile,
    TransferResult,
    source_list,
)
from installer_bootstrap.application.exceptions import FetchNotFound, FetchTransient
from installer_bootstrap.application.fetcher import ArtifactFetcher, classify_failure

from tests.fixtures import ScriptedTransfer, not_found, refused

ARTIFACT = "parallels_installer_Ubuntu_22.04_x86_64"


def url(source, tier):
    return f"{source}/{tier}/{ARTIFACT}"


class TestFetchPlan:

    def test_build_with_override(self, ubuntu_profile):
        plan = FetchPlan.build(
            ubuntu_profile,
            default_tiers=["stable", "legacy"],
            up_to_date_tier="stable",
            public_source="https://public.example.com/",
            override_source="https://mirror.example.com",
        )

        assert plan.artifact_name == ARTIFACT
        assert plan.tiers == ("stable", "legacy")
        assert plan.sources == ("https://mirror.example.com", "https://public.example.com")

    def test_up_to_date_only_shrinks_tiers(self, ubuntu_profile):
        plan = FetchPlan.build(
            ubuntu_profile,
            default_tiers=["stable", "legacy"],
            up_to_date_tier="stable",
            public_source="https://public.example.com",
            up_to_date_only=True,
        )

        assert plan.tiers == ("stable",)
        assert plan.sources == ("https://public.example.com",)

    def test_empty_lists_are_rejected(self):
        with pytest.raises(ValueError):
            FetchPlan(artifact_name=ARTIFACT, tiers=(), sources=("s",))
        with pytest.raises(ValueError):
            FetchPlan(artifact_name=ARTIFACT, tiers=("t",), sources=())

    def test_source_list_removes_duplicates(self):
        assert source_list("https://a", "https://a/") == ("https://a",)
        assert source_list("https://a", "") == ("https://a",)


class TestClassifyFailure:

    def test_404_is_not_found(self):
        attempt = FetchAttempt("t", "s", "s/t/a", 404, "HTTP 404 Not Found")
        assert classify_failure(attempt) is FailureKind.NOT_FOUND

    @pytest.mark.parametrize("status", [None, 403, 500, 503])
    def test_anything_else_is_transient(self, status):
        attempt = FetchAttempt("t", "s", "s/t/a", status, "failure")
        assert classify_failure(attempt) is FailureKind.TRANSIENT


class TestArtifactFetcher:

    def test_attempt_order_is_tiers_outer_sources_inner(
        self, ubuntu_profile, destination
    ):
        transfer = ScriptedTransfer(default=refused())
        fetcher = ArtifactFetcher(transfer, destination)

        fetcher.fetch(ubuntu_profile, ["T1", "T2"], ["S1", "S2"])

        assert transfer.calls == [
            url("S1", "T1"),
            url("S2", "T1"),
            url("S1", "T2"),
            url("S2", "T2"),
        ]

    def test_first_success_wins(self, ubuntu_profile, destination):
        transfer = ScriptedTransfer(
            results={url("S2", "T1"): TransferResult(ok=True, status_code=200)},
            default=refused(),
        )
        fetcher = ArtifactFetcher(transfer, destination)

        outcome = fetcher.fetch(ubuntu_profile, ["T1", "T2"], ["S1", "S2"])

        assert outcome.ok
        assert (outcome.tier, outcome.source) == ("T1", "S2")
        assert transfer.calls == [url("S1", "T1"), url("S2", "T1")]

    def test_all_not_found(self, ubuntu_profile, destination):
        transfer = ScriptedTransfer(default=not_found())
        fetcher = ArtifactFetcher(transfer, destination)

        outcome = fetcher.fetch(ubuntu_profile, ["T1", "T2"], ["S1", "S2"])

        assert not outcome.ok
        assert outcome.failure is FailureKind.NOT_FOUND
        assert len(outcome.attempts) == 4
        with pytest.raises(FetchNotFound) as exc_info:
            outcome.raise_for_failure(ubuntu_profile)
        assert exc_info.value.report_type == "unsupported_os"
        assert exc_info.value.os_name == "Ubuntu 22.04"
        assert len(exc_info.value.diagnostics) == 4

    def test_only_last_failure_is_classified(self, ubuntu_profile, destination):
        transfer = ScriptedTransfer(
            results={url("S1", "T1"): refused()},
            default=not_found(),
        )
        fetcher = ArtifactFetcher(transfer, destination)

        outcome = fetcher.fetch(ubuntu_profile, ["T1"], ["S1", "S2"])
        assert outcome.failure is FailureKind.NOT_FOUND

        transfer = ScriptedTransfer(
            results={url("S2", "T1"): refused()},
            default=not_found(),
        )
        fetcher = ArtifactFetcher(transfer, destination)

        outcome = fetcher.fetch(ubuntu_profile, ["T1"], ["S1", "S2"])
        assert outcome.failure is FailureKind.TRANSIENT
        with pytest.raises(FetchTransient):
            outcome.raise_for_failure(ubuntu_profile)

    def test_recovery_after_refused_connection(
        self, ubuntu_profile, destination, caplog
    ):
        transfer = ScriptedTransfer(results={url("S1", "T1"): refused()})
        fetcher = ArtifactFetcher(transfer, destination)

        with caplog.at_level(logging.INFO):
            outcome = fetcher.fetch(ubuntu_profile, ["T1"], ["S1", "S2"])

        assert outcome.ok
        assert outcome.path == destination
        assert stat.S_IMODE(destination.stat().st_mode) == 0o700
        assert len(outcome.attempts) == 1
        assert "Connection refused" not in caplog.text

        caplog.clear()
        with caplog.at_level(logging.DEBUG):
            fetcher.fetch(ubuntu_profile, ["T1"], ["S1", "S2"])
        assert "Connection refused" in caplog.text

    def test_existing_destination_is_removed(self, ubuntu_profile, destination):
        destination.parent.mkdir(parents=True)
        destination.write_text("stale")
        fetcher = ArtifactFetcher(ScriptedTransfer(default=not_found()), destination)

        fetcher.fetch(ubuntu_profile, ["T1"], ["S1"])

        assert not destination.exists()

    def test_profile_is_not_reclassified(self, destination):
        profile = HostProfile("CentOS", "7", "x86_64")
        transfer = ScriptedTransfer()

        ArtifactFetcher(transfer, destination).fetch(profile, ["T"], ["S"])

        assert transfer.calls == ["S/T/parallels_installer_CentOS_7_x86_64"]


class TestAuxiliaryFetch:

    def test_first_available_source(self, tmp_path):
        target = tmp_path / "reporter"
        transfer = ScriptedTransfer(results={"S1/reporter.py": not_found()})
        fetcher = ArtifactFetcher(transfer, tmp_path / "installer")

        assert fetcher.fetch_auxiliary("reporter.py", ["S1", "S2"], target)
        assert transfer.calls == ["S1/reporter.py", "S2/reporter.py"]
        assert stat.S_IMODE(target.stat().st_mode) == 0o700

    def test_failure_is_not_fatal(self, tmp_path):
        transfer = ScriptedTransfer(default=refused())
        fetcher = ArtifactFetcher(transfer, tmp_path / "installer")

        assert fetcher.fetch_auxiliary("reporter.py", ["S1"], tmp_path / "r") is False


class TestDestinationErrors:

    def test_uncleared_destination_fails_without_transfers(
        self, ubuntu_profile, destination
    ):
        destination.mkdir(parents=True)
        transfer = ScriptedTransfer()

        outcome = ArtifactFetcher(transfer, destination).fetch(
            ubuntu_profile, ["T"], ["S"]
        )

        assert not outcome.ok
        assert outcome.failure is FailureKind.TRANSIENT
        assert transfer.calls == []
        with pytest.raises(FetchTransient) as exc_info:
            outcome.raise_for_failure(ubuntu_profile)
        assert str(destination) in exc_info.value.diagnostics[0]

    def test_uncleared_auxiliary_destination_is_not_fatal(self, tmp_path):
        target = tmp_path / "reporter"
        target.mkdir()
        transfer = ScriptedTransfer()
        fetcher = ArtifactFetcher(transfer, tmp_path / "installer")

        assert fetcher.fetch_auxiliary("reporter.py", ["S1"], target) is False
        assert transfer.calls == []

    def test_permission_failure_moves_to_next_source(
        self, ubuntu_profile, destination, monkeypatch
    ):
        def refuse_chmod(path, mode):
            raise PermissionError("Operation not permitted")

        monkeypatch.setattr("pathlib.Path.chmod", refuse_chmod)
        transfer = ScriptedTransfer()
        fetcher = ArtifactFetcher(transfer, destination)

        outcome = fetcher.fetch(ubuntu_profile, ["T"], ["S1", "S2"])

        assert not outcome.ok
        assert outcome.failure is FailureKind.TRANSIENT
        assert len(transfer.calls) == 2
        assert "Operation not permitted" in outcome.diagnostics[-1]
        assert fetcher.fetch_auxiliary("reporter.py", ["S1"], destination) is False
