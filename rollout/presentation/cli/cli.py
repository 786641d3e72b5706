"""
CLI Module

Architectural Intent:
- Command-line interface for Rollout
- Entry point for all user interactions
- Delegates to application use cases via composition root
- Supports --verbose/--debug flags for log level control and --pretend for dry runs
"""

import argparse
import sys
import asyncio
import logging
import traceback
from rollout.application.dtos.deployment_dtos import DeployRequest, FleetTaskRequest
from rollout.application.tasks import TaskKind
from rollout.infrastructure.config import load_config
from rollout.infrastructure.logging import configure_logging
from rollout.presentation.cli.console import ConsoleReporter

_FLEET_COMMANDS = {
    "setup": TaskKind.SETUP,
    "rollback": TaskKind.ROLLBACK,
    "cleanup": TaskKind.CLEANUP,
    "teardown": TaskKind.TEARDOWN,
    "current": TaskKind.CURRENT_RELEASE,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Rollout: timestamped releases with atomic symlink promotion"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Echo remote command output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--pretend", action="store_true",
        help="Print the commands that would run without touching the hosts",
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to rollout.json"
    )
    parser.add_argument(
        "--targets", "-t", help="Comma-separated list of targets (overrides config)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("setup", help="Create the application folders on every host")

    deploy_parser = subparsers.add_parser("deploy", help="Deploy a new release")
    deploy_parser.add_argument(
        "--tests", action="store_true", help="Run the test suite before promoting"
    )

    rollback_parser = subparsers.add_parser(
        "rollback", help="Point current back at the previous release"
    )
    rollback_parser.add_argument(
        "--release", "-r", type=int, help="Specific release id to roll back to"
    )

    cleanup_parser = subparsers.add_parser("cleanup", help="Remove old releases")
    cleanup_parser.add_argument(
        "--keep", "-k", type=int, help="Releases to keep besides the current one"
    )

    subparsers.add_parser("teardown", help="Remove the application from every host")
    subparsers.add_parser("current", help="Show the current release")

    return parser


def _print_results(results) -> None:
    for result in results:
        if result.skipped:
            print(f"[~] {result.host} {result.kind.value}: skipped ({result.message})")
        elif not result.succeeded:
            print(f"[-] {result.host} {result.kind.value}: failed ({result.message})")


async def async_main():
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    config = load_config(args.config)

    if args.debug:
        configure_logging(level=logging.DEBUG)
    elif args.verbose:
        configure_logging(level=logging.INFO)
    else:
        configure_logging(level=config.log_level)

    verbose = args.verbose or args.debug
    targets = args.targets.split(",") if args.targets else list(config.fleet.targets)
    if not targets:
        print("[-] No targets: pass --targets or set fleet.targets in rollout.json")
        sys.exit(1)

    from rollout.composition_root import create_container

    container = create_container(config, reporter=ConsoleReporter())
    await container.telemetry.initialize()

    if args.pretend:
        print("[~] Pretend mode: commands are printed, not executed")

    try:
        if args.command == "deploy":
            request = DeployRequest(
                targets=targets,
                run_tests=args.tests,
                pretend=args.pretend,
                verbose=verbose,
            )
            print(f"[*] Deploying {config.repository.branch} to {targets}...")
            deployment = await container.deploy_release.execute(request)
            _print_results(deployment.results)
            if deployment.succeeded:
                print("[+] Deployment Successful to all hosts.")
            else:
                print(
                    f"[-] Deployment aborted at {deployment.failed_stage.value}: "
                    f"{deployment.error_message}"
                )
                if deployment.fatal:
                    print("[!] Promotion failed: manual intervention required.")
                sys.exit(1)
            return

        kind = _FLEET_COMMANDS[args.command]
        options = {}
        if args.command == "rollback" and args.release is not None:
            options["release_id"] = args.release
        if args.command == "cleanup" and args.keep is not None:
            options["keep"] = args.keep

        response = await container.run_fleet_task.execute(
            FleetTaskRequest(
                kind=kind,
                targets=targets,
                pretend=args.pretend,
                verbose=verbose,
                options=options,
            )
        )
        _print_results(response.results)
        if response.succeeded:
            print(f"[+] {args.command.capitalize()} Successful.")
        else:
            print(f"[-] {args.command.capitalize()} Failed on {response.failed_hosts}.")
            sys.exit(1)
    except ValueError as e:
        print(f"[-] {e}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)
    finally:
        await container.telemetry.export()


def main():
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
