"""
Dependency Injection container for the bootstrap installer.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration and command-line arguments.
"""

import functools

from dependency_injector import containers, providers
import httpx

from ..application.classifier import OsClassifier
from ..application.fetcher import ArtifactFetcher
from ..application.service import BootstrapService
from ..settings import PERSISTED_SETTINGS_FILE, load_settings

from .prerequisites import PrerequisiteUpdater
from .reporting import ErrorReporter
from .settings_store import SettingsStore
from .system import Launcher, LocalSystemProbe, SubprocessRunner, ensure_privileges
from .transfer import CurlTransfer, HttpxTransfer, WgetTransfer, select_transfer


def _prefer(cli_value, configured):
    """Returns the command-line value when given, the configured one otherwise."""
    return cli_value if cli_value else configured


def _enabled(disabled_by_cli, configured):
    return bool(configured) and not disabled_by_cli


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    persisted_settings_file = providers.Object(PERSISTED_SETTINGS_FILE)

    config = providers.Singleton(
        load_settings,
        persisted_settings_file=persisted_settings_file,
    )

    http_client = providers.Singleton(httpx.Client, follow_redirects=True)

    command_runner = providers.Singleton(SubprocessRunner)

    transfer_registry = providers.Dict(
        httpx=providers.Factory(
            HttpxTransfer,
            client=http_client,
            timeout=config.provided.transfer.timeout,
            chunk_size=config.provided.transfer.chunk_size,
        ),
        curl=providers.Factory(CurlTransfer, runner=command_runner),
        wget=providers.Factory(WgetTransfer, runner=command_runner),
    )

    # Selected once per run.
    transfer = providers.Singleton(
        select_transfer,
        mechanisms=config.provided.transfer.mechanisms,
        registry=transfer_registry,
    )

    system_probe = providers.Factory(
        LocalSystemProbe,
        root=config.provided.paths.system_root,
    )

    classifier = providers.Factory(OsClassifier, probe=system_probe)

    fetcher = providers.Factory(
        ArtifactFetcher,
        transfer=transfer,
        destination=config.provided.paths.destination,
    )

    error_reporter = providers.Singleton(
        ErrorReporter,
        runner=command_runner,
        log_path=config.provided.reporting.log_path,
    )

    prerequisites = providers.Factory(
        PrerequisiteUpdater,
        runner=command_runner,
        packages=config.provided.prerequisites.packages,
    )

    settings_store = providers.Factory(
        SettingsStore,
        path=persisted_settings_file,
    )

    launcher = providers.Factory(Launcher)

    privilege_check = providers.Factory(
        functools.partial,
        ensure_privileges,
        require_root=config.provided.privileges.require_root,
    )

    bootstrap_service = providers.Factory(
        BootstrapService,
        classifier=classifier,
        fetcher=fetcher,
        prerequisites=prerequisites,
        reporter=error_reporter,
        settings_store=settings_store,
        launcher=launcher,
        privilege_check=privilege_check,
        default_tiers=config.provided.fetch.default_tiers,
        up_to_date_tier=config.provided.fetch.up_to_date_tier,
        public_source=config.provided.fetch.public_source,
        override_source=providers.Callable(
            _prefer, cli_args.source, config.provided.fetch.override_source
        ),
        up_to_date_only=providers.Callable(
            _prefer,
            cli_args.up_to_date_only,
            config.provided.fetch.up_to_date_only,
        ),
        reporter_enabled=providers.Callable(
            _enabled, cli_args.no_reporter, config.provided.reporter.enabled
        ),
        reporter_name=config.provided.reporter.name,
        reporter_destination=config.provided.paths.reporter_destination,
    )
