"""
Command-line interface for the BuildPilot build orchestrator.

This module provides the main CLI entry point, handling command-line
arguments, configuration loading, and dispatching to local Android builds,
remote iOS builds, the remote recovery sequence and the maintenance
utilities (hardware profile, system stats, workspace cleanup, WSL purge,
Gradle pre-warm).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..config import get_config, get_config_info, set_config_path
from ..models.config import AndroidBuildConfig, AppConfig, ConnectionDescriptor, IosBuildConfig
from ..models.results import BuildOutcome
from ..orchestration import (
    ActiveBuildRegistry,
    BuildSessionController,
    LoggingObserver,
    Observer,
    RemoteRecoverySequencer,
    SafeObserver,
    SignalHandler,
    StreamObserver,
)
from ..orchestration.build_configuration import ANDROID_BUILD_TYPES, IOS_BUILD_TYPES
from ..system import (
    clear_archive,
    get_system_stats,
    nuke_build,
    prewarm_gradle,
    purge_wsl,
    sample_hardware_profile,
)
from ..system.commands import SHELL_CHOICES
from ..validation import BuildPilotError, ValidationError, handle_cli_error

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _add_remote_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("remote Mac")
    group.add_argument("--address", help="host[:port] of the Mac (overrides [remote].address)")
    group.add_argument("--username", help="SSH user (overrides [remote].username)")
    group.add_argument("--password", help="SSH password (prefer $BUILDPILOT_SSH_PASSWORD)")
    group.add_argument("--key-path", help="Private key file; wins over a password")
    group.add_argument("--remote-path", help="Project directory on the Mac")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildpilot",
        description="Run local Android and remote iOS builds with live output and persisted logs.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to config.toml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "-q", "--quiet", action="store_true",
        help="Do not echo build output; it goes to the debug log and the build log file only",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    android = subparsers.add_parser("android", help="Build the Android app locally")
    android.add_argument("-w", "--working-dir", type=Path, help="Project root")
    android.add_argument("-t", "--build-type", choices=ANDROID_BUILD_TYPES, help="apk or aab")
    android.add_argument("--no-turbo", action="store_true", help="Build through 'eas build --local'")
    android.add_argument("--archive-dir", type=Path, help="Where artifacts are archived")
    android.add_argument("--log-dir", type=Path, help="Where build logs are written")
    android.add_argument("--shell", choices=SHELL_CHOICES, help="Shell running the build")

    ios = subparsers.add_parser("ios", help="Build the iOS app on a remote Mac")
    _add_remote_arguments(ios)
    ios.add_argument("--scheme", help="Xcode scheme (and workspace name)")
    ios.add_argument("-t", "--build-type", choices=IOS_BUILD_TYPES, help="device or simulator")
    ios.add_argument("--simulator", help="Simulator name for simulator builds")
    ios.add_argument("--local-dir", type=Path, help="Local project to sync before building")
    ios.add_argument("--sync", action="store_true", help="rsync --local-dir to the Mac first")
    ios.add_argument("--log-dir", type=Path, help="Where build logs are written")

    recover = subparsers.add_parser("recover", help="Run the iOS recovery sequence on the Mac")
    _add_remote_arguments(recover)

    subparsers.add_parser("profile", help="Show the hardware profile used to size Gradle")
    subparsers.add_parser("stats", help="Show current CPU and memory usage")

    nuke = subparsers.add_parser("nuke", help="Delete Android build outputs and Gradle caches")
    nuke.add_argument("-w", "--working-dir", type=Path, help="Project root")

    clear = subparsers.add_parser("clear-archive", help="Delete archived artifacts")
    clear.add_argument("--archive-dir", type=Path, help="Archive directory to clear")
    clear.add_argument("-w", "--working-dir", type=Path, help="Project root (default archive location)")

    subparsers.add_parser("purge-wsl", help="Shut down WSL to release its memory")

    prewarm = subparsers.add_parser("prewarm", help="Start the Gradle daemon in the background")
    prewarm.add_argument("-w", "--working-dir", type=Path, help="Project root")
    prewarm.add_argument("--shell", choices=SHELL_CHOICES, help="Shell running Gradle")

    return parser


def load_app_config(config_path: Optional[Path]) -> AppConfig:
    """
    Load config.toml; an absent default file yields an empty configuration.

    An explicitly requested file that is missing or invalid exits the CLI.
    """
    if config_path is not None:
        set_config_path(config_path)
    try:
        app_config = get_config()
        logger.debug(f"Configuration state: {get_config_info()}")
        return app_config
    except FileNotFoundError as e:
        if config_path is not None:
            handle_cli_error(error=e, context="configuration loading", exit_code=EXIT_FAILURE, logger=logger)
        logger.info("No configuration file found, using command-line arguments only")
        return AppConfig()
    except ValidationError as e:
        handle_cli_error(error=e, context="configuration validation", exit_code=EXIT_FAILURE, logger=logger)
    except Exception as e:
        handle_cli_error(error=e, context="configuration loading", exit_code=EXIT_FAILURE, logger=logger)


def resolve_android_config(args: argparse.Namespace, app_config: AppConfig) -> AndroidBuildConfig:
    base = app_config.android
    working_dir = args.working_dir or (base.working_dir if base else None)
    if working_dir is None:
        raise ValidationError(
            "No Android project given: pass --working-dir or set [android].working_dir",
            field_name="android.working_dir",
        )
    return AndroidBuildConfig(
        working_dir=Path(working_dir),
        build_type=args.build_type or (base.build_type if base else "apk"),
        turbo_mode=False if args.no_turbo else (base.turbo_mode if base else True),
        archive_dir=args.archive_dir or (base.archive_dir if base else app_config.archive_dir),
        log_dir=args.log_dir or (base.log_dir if base else app_config.log_dir),
        sdk_path=base.sdk_path if base else None,
        shell=args.shell or (base.shell if base else "auto"),
    )


def resolve_connection(args: argparse.Namespace, app_config: AppConfig) -> ConnectionDescriptor:
    base = app_config.remote
    return ConnectionDescriptor(
        address=args.address or (base.address if base else ""),
        username=args.username or (base.username if base else ""),
        password=args.password or (base.password if base else None),
        key_path=args.key_path or (base.key_path if base else None),
    )


def resolve_remote_path(args: argparse.Namespace, app_config: AppConfig) -> str:
    remote_path = args.remote_path or (app_config.ios.remote_path if app_config.ios else None)
    if not remote_path:
        raise ValidationError(
            "No remote project path given: pass --remote-path or set [ios].remote_path",
            field_name="ios.remote_path",
        )
    return remote_path


def resolve_ios_config(args: argparse.Namespace, app_config: AppConfig) -> IosBuildConfig:
    base = app_config.ios
    scheme = args.scheme or (base.scheme if base else None)
    if not scheme:
        raise ValidationError(
            "No Xcode scheme given: pass --scheme or set [ios].scheme",
            field_name="ios.scheme",
        )
    local_dir = args.local_dir or (base.local_dir if base else None)
    sync_before_build = args.sync or (base.sync_before_build if base else False)
    if sync_before_build and local_dir is None:
        raise ValidationError("--sync requires --local-dir", field_name="ios.local_dir")
    return IosBuildConfig(
        connection=resolve_connection(args, app_config),
        remote_path=resolve_remote_path(args, app_config),
        scheme=scheme,
        build_type=args.build_type or (base.build_type if base else "simulator"),
        simulator_name=args.simulator or (base.simulator_name if base else "iPhone 15"),
        local_dir=local_dir,
        sync_before_build=sync_before_build,
        log_dir=args.log_dir or (base.log_dir if base else app_config.log_dir),
    )


def _report(outcome: BuildOutcome) -> int:
    if outcome.succeeded:
        logger.info(outcome.summary())
        return EXIT_SUCCESS
    logger.error(outcome.summary())
    return EXIT_FAILURE


def _working_dir(args: argparse.Namespace, app_config: AppConfig) -> Path:
    working_dir = args.working_dir or (app_config.android.working_dir if app_config.android else None)
    if working_dir is None:
        raise ValidationError(
            "No project given: pass --working-dir or set [android].working_dir",
            field_name="android.working_dir",
        )
    return Path(working_dir)


def make_sink(quiet: bool = False) -> Observer:
    """Live output goes to stdout, or only to the debug log with --quiet."""
    if quiet:
        return LoggingObserver(logging.getLogger("buildpilot.output"), level=logging.DEBUG)
    return StreamObserver()


def run_command(args: argparse.Namespace, app_config: AppConfig) -> int:
    """Dispatch one parsed subcommand; returns the process exit code."""
    registry = ActiveBuildRegistry()
    observer = SafeObserver(make_sink(args.quiet))

    if args.command == "android":
        controller = BuildSessionController(observer, registry, timeouts=app_config.timeouts)
        config = resolve_android_config(args, app_config)
        with SignalHandler(registry):
            return _report(controller.run_android_build(config))

    if args.command == "ios":
        controller = BuildSessionController(observer, registry, timeouts=app_config.timeouts)
        config = resolve_ios_config(args, app_config)
        with SignalHandler(registry):
            return _report(controller.run_ios_build(config))

    if args.command == "recover":
        sequencer = RemoteRecoverySequencer(observer, timeouts=app_config.timeouts, registry=registry)
        descriptor = resolve_connection(args, app_config)
        with SignalHandler(registry):
            return _report(sequencer.run(descriptor, resolve_remote_path(args, app_config)))

    if args.command == "profile":
        profile = sample_hardware_profile()
        print(f"CPU cores:   {profile.cpu_cores}")
        print(f"Total RAM:   {profile.total_ram_gb} GB")
        print(f"Max workers: {profile.max_workers}")
        print(f"JVM heap:    {profile.jvm_heap_gb} GB")
        return EXIT_SUCCESS

    if args.command == "stats":
        stats = get_system_stats()
        gib = 1024 ** 3
        print(f"CPU usage:  {', '.join(f'{usage:.0f}%' for usage in stats.cpu_usage)}")
        print(f"Memory:     {stats.used_memory / gib:.1f} / {stats.total_memory / gib:.1f} GB used")
        print(f"Available:  {stats.available_memory / gib:.1f} GB")
        return EXIT_SUCCESS

    if args.command == "nuke":
        print(nuke_build(_working_dir(args, app_config)))
        return EXIT_SUCCESS

    if args.command == "clear-archive":
        archive_dir = args.archive_dir or app_config.archive_dir
        if archive_dir is None:
            archive_dir = AndroidBuildConfig(working_dir=_working_dir(args, app_config)).resolved_archive_dir()
        print(clear_archive(Path(archive_dir)))
        return EXIT_SUCCESS

    if args.command == "purge-wsl":
        print(purge_wsl())
        return EXIT_SUCCESS

    if args.command == "prewarm":
        shell = args.shell or (app_config.android.shell if app_config.android else "auto")
        thread = prewarm_gradle(_working_dir(args, app_config), shell)
        thread.join()
        return EXIT_SUCCESS

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    app_config = load_app_config(args.config)
    try:
        return run_command(args, app_config)
    except (BuildPilotError, ValidationError) as e:
        logger.error(f"{args.command} failed: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warning(f"{args.command} interrupted by user (KeyboardInterrupt)")
        return EXIT_INTERRUPTED


def main_cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    main_cli()
