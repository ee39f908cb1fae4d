"""CLI entry point for running a package's tests in React Native."""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import ValidationError

from rn_tape.errors import UsageError
from rn_tape.models.config import (
    DEFAULT_IDLE_TIMEOUT,
    DEFAULT_PORT,
    DEFAULT_TEST_PATH,
    TARGET_SYSTEMS,
    BrowserStackCredentials,
    RunConfig,
)
from rn_tape.orchestrator import TestRunOrchestrator

# Distinct from the exit codes carried by test results
ORCHESTRATION_FAILURE_EXIT_CODE = 2


async def run(config: RunConfig) -> int:
    """Run the tests and return the exit code."""
    log = logging.getLogger("rn_tape")

    try:
        orchestrator = TestRunOrchestrator.from_config(config)
        log.info(
            "## Running %s build → %s",
            "browser-stack" if config.remote else "local",
            config.build_name,
        )
        result = await orchestrator.run()
    except Exception as exc:
        log.error("Test run failed: %s", exc, exc_info=exc)
        return ORCHESTRATION_FAILURE_EXIT_CODE

    print(result.output)
    return result.exit_code


def build_config(
    args: argparse.Namespace, environ: Mapping[str, str]
) -> RunConfig:
    """Create the run configuration from parsed arguments.

    Raises:
        UsageError: If the arguments do not describe a valid run

    """
    credentials = None
    if args.user:
        if not args.access_key:
            raise UsageError("--access-key is required when --user is given")
        credentials = BrowserStackCredentials(
            user=args.user, access_key=args.access_key
        )

    try:
        return RunConfig(
            system=args.system,
            package_dir=Path(args.location).resolve(),
            test_path=args.test,
            device=args.device,
            os_version=args.os_version,
            idle_timeout=args.idle_timeout,
            credentials=credentials,
            run_id=environ.get("GITHUB_RUN_ID") or "dirty",
            tunnel_region=environ.get("NGROK_REGION") or None,
            port=args.port,
            host_app_dir=args.host_app,
            verbose=args.verbose,
            force_clean=args.force_clean,
        )
    except ValidationError as exc:
        raise UsageError("Invalid run configuration", data=str(exc)) from exc


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    """Create the argument parser, taking defaults from the environment."""
    parser = argparse.ArgumentParser(
        prog="rn-tape",
        description="Run your package's tests in react-native",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    run_parser = commands.add_parser(
        "run", help="Run your package's tests in react-native"
    )
    run_parser.add_argument(
        "system",
        choices=TARGET_SYSTEMS,
        help="The system you want to run the tests on",
    )
    run_parser.add_argument(
        "location",
        nargs="?",
        default=os.getcwd(),
        help="The path to the package you wish to test",
    )
    run_parser.add_argument(
        "test",
        nargs="?",
        default=DEFAULT_TEST_PATH,
        help="A relative path within your package to its test entry point",
    )
    run_parser.add_argument(
        "--access-key",
        default=environ.get("BROWSERSTACK_ACCESS_KEY"),
        help="Your BrowserStack access key",
    )
    run_parser.add_argument(
        "--user",
        default=environ.get("BROWSERSTACK_USER"),
        help="Your BrowserStack username; specifying it enables BrowserStack",
    )
    run_parser.add_argument(
        "--device",
        default=environ.get("BROWSERSTACK_DEVICE"),
        help="The device to run BrowserStack tests on",
    )
    run_parser.add_argument(
        "--os-version",
        default=environ.get("BROWSERSTACK_OS_VERSION"),
        help="The OS version of the device to run BrowserStack tests on",
    )
    run_parser.add_argument(
        "--idle-timeout",
        type=int,
        default=environ.get("BROWSERSTACK_IDLE_TIMEOUT") or DEFAULT_IDLE_TIMEOUT,
        help="Seconds before BrowserStack ends an idle session "
        "(values of 300 or more keep the session alive with pings)",
    )
    run_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help="Local port of the result collector",
    )
    run_parser.add_argument(
        "--host-app",
        type=Path,
        default=environ.get("RN_TAPE_HOST_APP") or None,
        help="Host app checkout to use instead of the bundled one",
    )
    run_parser.add_argument(
        "--force-clean",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Remove a stale copy of the package even outside the working directory",
    )
    run_parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log the output of the build processes",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    environ = dict(os.environ)
    args = build_parser(environ).parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = build_config(args, environ)
    except UsageError as exc:
        logging.getLogger("rn_tape").error("%s", exc)
        sys.exit(ORCHESTRATION_FAILURE_EXIT_CODE)

    exit_code = asyncio.run(run(config))
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
