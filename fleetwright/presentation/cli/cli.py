"""
CLI Module

Architectural Intent:
- Command-line interface for Fleetwright
- Entry point for all user interactions
- Delegates to application use cases via composition root
- Supports --verbose/--debug flags for log level control

Exit codes:
- 0 success, 1 any failure, 130 interrupted by the operator
"""

import argparse
import asyncio
import logging
import sys
import traceback
from typing import Optional, Sequence

from fleetwright.application.dtos.rollout_dtos import RollbackRequest, RolloutRequest
from fleetwright.application.orchestration.background import background_task, heartbeat
from fleetwright.composition_root import FleetwrightContainer, create_container
from fleetwright.domain.errors import FleetError, RateLimitError, RolloutInterrupted, TopologyError
from fleetwright.domain.events.rollout_events import InstallStateChanged, NodeInstallStarted
from fleetwright.domain.value_objects.node import Node
from fleetwright.domain.value_objects.version import Version
from fleetwright.infrastructure.config import load_config
from fleetwright.infrastructure.logging import configure_logging
from fleetwright.presentation.cli.formatting import (
    format_age,
    format_backup,
    format_size,
    render_report,
)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INTERRUPTED = 130

HEARTBEAT_SECONDS = 15.0


def _split(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(v.strip() for v in value.split(",") if v.strip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleetwright",
        description="Fleetwright: safe artifact rollouts across a Proxmox cluster",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--config", "-c", default=None, help="Path to JSON config (default: fleetwright.json)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "status", help="Show reachability and installed version of every member"
    )

    install_parser = subparsers.add_parser(
        "install", help="Install or update the artifact across the cluster"
    )
    install_parser.add_argument(
        "--version", dest="release_version", help="Install this release instead of the latest"
    )
    install_parser.add_argument(
        "--nodes", "-n", help="Comma-separated member names (default: all members)"
    )
    install_parser.add_argument(
        "--skip-local", action="store_true", help="Do not install on the local member"
    )
    install_parser.add_argument(
        "--allow-partial",
        action="store_true",
        help="Proceed with reachable members when some are unreachable",
    )
    install_parser.add_argument(
        "--retry", action="store_true", help="Run one retry pass over failed members"
    )

    check_parser = subparsers.add_parser("check", help="Check for a newer release")
    check_parser.add_argument("--node", help="Member to check (default: local member)")

    versions_parser = subparsers.add_parser("versions", help="List published releases")
    versions_parser.add_argument(
        "--limit", type=int, default=10, help="Number of releases to show"
    )

    backups_parser = subparsers.add_parser("backups", help="Manage artifact backups")
    backups_parser.add_argument("--node", help="Member to manage (default: local member)")
    backup_actions = backups_parser.add_subparsers(dest="backup_action")
    backup_actions.add_parser("list", help="List backups, newest first")
    backup_actions.add_parser("prune", help="Delete backups exceeding the retention policy")
    keep_parser = backup_actions.add_parser("keep", help="Keep only the newest N backups")
    keep_parser.add_argument("count", type=int)
    older_parser = backup_actions.add_parser(
        "older-than", help="Delete backups older than N days"
    )
    older_parser.add_argument("days", type=int)
    purge_parser = backup_actions.add_parser("purge", help="Delete every backup")
    purge_parser.add_argument(
        "--yes", action="store_true", help="Confirm deletion of all backups"
    )

    rollback_parser = subparsers.add_parser(
        "rollback", help="Restore a previous artifact from backup"
    )
    rollback_parser.add_argument("--node", help="Member to roll back (default: local member)")
    rollback_parser.add_argument(
        "--backup", "-b", help="Backup file name (default: newest backup)"
    )

    uninstall_parser = subparsers.add_parser(
        "uninstall", help="Back up and remove the artifact from one member"
    )
    uninstall_parser.add_argument("--node", help="Member to uninstall from (default: local member)")
    uninstall_parser.add_argument(
        "--yes", action="store_true", help="Confirm removal of the artifact"
    )

    return parser


async def _resolve_node(container: FleetwrightContainer, name: Optional[str]) -> Node:
    if not name:
        return await container.topology.current_member()
    for member in await container.topology.list_members():
        if member.name == name:
            return member
    raise TopologyError(f"Unknown cluster member: {name}")


async def cmd_status(container: FleetwrightContainer, args) -> int:
    print("[*] Inspecting cluster members...")
    status = await container.inspect_fleet.execute()
    for entry in status.nodes:
        marker = " (local)" if entry.node.is_local else ""
        if not entry.reachable:
            print(f"[-] {entry.node.name}{marker}: unreachable ({entry.error})")
        elif entry.error:
            print(f"[-] {entry.node.name}{marker}: {entry.error}")
        elif not entry.present:
            print(f"[*] {entry.node.name}{marker}: not installed")
        else:
            print(f"[+] {entry.node.name}{marker}: {entry.version or 'unknown version'}")
    if status.diverged:
        print(f"[!] Members run different versions: {', '.join(sorted(status.versions))}")
    return EXIT_OK


def _subscribe_progress(container: FleetwrightContainer, verbose: bool) -> None:
    async def on_started(event: NodeInstallStarted) -> None:
        print(
            f"[*] [{event.position}/{event.total}] Installing {event.version} "
            f"on {event.aggregate_id}..."
        )

    async def on_state(event: InstallStateChanged) -> None:
        print(f"    {event.aggregate_id}: {event.state}")

    container.event_bus.subscribe(NodeInstallStarted, on_started)
    if verbose:
        container.event_bus.subscribe(InstallStateChanged, on_state)


async def cmd_install(container: FleetwrightContainer, args, verbose: bool) -> int:
    request = RolloutRequest(
        node_names=_split(args.nodes),
        version=args.release_version,
        include_local=not args.skip_local,
    )
    print("[*] Resolving members and release...")
    plan = await container.prepare_rollout.execute(request)
    print(f"[*] Release {plan.release.version} ({plan.release.tag})")

    for unreachable in plan.probe.unreachable:
        print(f"[-] {unreachable.node.name}: unreachable ({unreachable.reason})")
    if not plan.complete and not args.allow_partial:
        print("[-] Some members are unreachable; rerun with --allow-partial to skip them.")
        return EXIT_FAILED
    if not plan.targets:
        print("[-] No reachable members to install on.")
        return EXIT_FAILED

    _subscribe_progress(container, verbose)

    def still_working(elapsed: float) -> None:
        print(f"[*] Still working ({elapsed:.0f}s elapsed)...")

    try:
        async with background_task(
            lambda stop: heartbeat(stop, HEARTBEAT_SECONDS, still_working)
        ):
            result = await container.rollout.execute(plan.targets, plan.release, plan.artifact)
            if args.retry and result.failed:
                print(f"[*] Retrying {len(result.failed)} failed member(s)...")
                result = await container.rollout.retry(result, plan.artifact)
    except RolloutInterrupted as e:
        print("\n[-] Rollout interrupted.")
        for line in render_report(e.result):
            print(line)
        return EXIT_INTERRUPTED

    for line in render_report(result):
        print(line)
    return EXIT_OK if result.ok else EXIT_FAILED


async def cmd_check(container: FleetwrightContainer, args) -> int:
    node = await _resolve_node(container, args.node)
    status = await container.check_updates.execute(node)
    print(f"[*] {node.name}: installed {status.installed or ('unknown' if status.present else 'none')}")
    print(f"[*] Latest release: {status.latest.version}")
    if status.update_available:
        print(f"[+] Update available: {status.latest.version}")
    else:
        print("[+] Up to date.")
    return EXIT_OK


async def cmd_versions(container: FleetwrightContainer, args) -> int:
    releases = await container.check_updates.releases()
    installed = None
    try:
        node = await container.topology.current_member()
        installed = (await container.check_updates.execute(node)).installed
    except FleetError as e:
        logging.getLogger(__name__).debug("Installed version unknown: %s", e)

    if not releases:
        print("[-] No releases found.")
        return EXIT_FAILED
    for release in releases[: max(args.limit, 0)]:
        flags = []
        if release.is_prerelease:
            flags.append("pre-release")
        if installed and release.parsed_version == Version.parse(installed):
            flags.append("installed")
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"  {release.tag}{suffix}")
    return EXIT_OK


async def cmd_backups(container: FleetwrightContainer, args) -> int:
    node = await _resolve_node(container, args.node)
    manage = container.manage_backups
    action = args.backup_action or "list"

    if action == "list":
        backups = await manage.list(node)
        stats = await manage.stats(node)
        if not backups:
            print(f"[*] No backups on {node.name}.")
            return EXIT_OK
        now = container.backup_store.now()
        print(
            f"[*] {stats.count} backup(s) on {node.name}, {format_size(stats.total_size)} total, "
            f"oldest {format_age(stats.oldest_age_days)}"
        )
        for backup in backups:
            print(f"  {format_backup(backup, now)}")
        if await manage.needs_cleanup(node):
            print("[!] Retention thresholds exceeded; run 'fleetwright backups prune'.")
        return EXIT_OK

    if action == "prune":
        deleted = await manage.prune(node)
    elif action == "keep":
        deleted = await manage.keep_latest(node, args.count)
    elif action == "older-than":
        deleted = await manage.delete_older_than(node, args.days)
    else:
        if not args.yes:
            print("[-] Refusing to delete every backup without --yes.")
            return EXIT_FAILED
        deleted = await manage.delete_all(node)
    print(f"[+] Deleted {deleted} backup(s) on {node.name}.")
    return EXIT_OK


async def cmd_rollback(container: FleetwrightContainer, args) -> int:
    request = RollbackRequest(node_name=args.node, backup_id=args.backup)
    node = await _resolve_node(container, request.node_name)
    print(f"[*] Rolling back {node.name}...")
    result = await container.rollback.execute(node, request.backup_id)
    if result.outcome.is_failure:
        print(f"[-] Rollback Failed: {result.outcome.describe()}")
        return EXIT_FAILED
    print(
        f"[+] {node.name} restored to {result.backup.version_label} "
        f"from {result.backup.backup_id}: {result.outcome.describe()}"
    )
    return EXIT_OK


async def cmd_uninstall(container: FleetwrightContainer, args) -> int:
    node = await _resolve_node(container, args.node)
    if not args.yes:
        print(f"[-] Refusing to uninstall from {node.name} without --yes.")
        return EXIT_FAILED
    print(f"[*] Uninstalling from {node.name}...")
    result = await container.uninstall.execute(node)
    if not result.removed:
        print(f"[*] Nothing installed on {node.name}.")
        return EXIT_OK
    print(f"[+] Removed from {node.name}, backup {result.backup.backup_id}")
    if result.needs_restart:
        print(f"[!] {node.name}: services need manual restart: {result.restart_error}")
    print(f"[*] Reinstall it with 'fleetwright rollback --node {node.name}'.")
    return EXIT_OK


async def async_main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    config = load_config(args.config)

    # Configure logging based on flags
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = logging.getLevelName(config.log_level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    configure_logging(level=level, log_file=config.log_file or None)

    verbose = args.verbose or args.debug
    try:
        container = create_container(config)
    except (FleetError, ValueError) as e:
        print(f"[-] Invalid configuration: {e}")
        return EXIT_FAILED

    try:
        if args.command == "status":
            return await cmd_status(container, args)
        if args.command == "install":
            return await cmd_install(container, args, verbose)
        if args.command == "check":
            return await cmd_check(container, args)
        if args.command == "versions":
            return await cmd_versions(container, args)
        if args.command == "backups":
            return await cmd_backups(container, args)
        if args.command == "rollback":
            return await cmd_rollback(container, args)
        if args.command == "uninstall":
            return await cmd_uninstall(container, args)
    except RateLimitError as e:
        print(f"[-] {e}")
        return EXIT_FAILED
    except (FleetError, ValueError) as e:
        print(f"[-] {args.command.capitalize()} Failed: {e}")
        if verbose:
            traceback.print_exc()
        return EXIT_FAILED
    finally:
        await container.close()

    parser.print_help()
    return EXIT_OK


def main():
    try:
        sys.exit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        print("\n[-] Interrupted.")
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
