"""
CLI Formatting

Architectural Intent:
- Turns domain results into operator-facing text lines
- Pure functions returning strings so the CLI only prints
- Failure reports always name every failed node with its reason
"""

from datetime import datetime
from typing import List

from fleetwright.domain.entities.rollout_result import RolloutResult
from fleetwright.domain.value_objects.backup import Backup


def format_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes}B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes // 1024}KB"
    if size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes // (1024 * 1024)}MB"
    return f"{size_bytes // (1024 * 1024 * 1024)}GB"


def _plural(count: int, unit: str) -> str:
    return f"1 {unit} ago" if count == 1 else f"{count} {unit}s ago"


def format_age(days: int) -> str:
    if days <= 0:
        return "Today"
    if days < 30:
        return _plural(days, "day")
    if days < 365:
        return _plural(days // 30, "month")
    return _plural(days // 365, "year")


def format_backup(backup: Backup, now: datetime) -> str:
    return (
        f"{backup.backup_id}  v{backup.version_label}  "
        f"{backup.timestamp:%Y-%m-%d %H:%M:%S}  "
        f"{format_size(backup.size_bytes)}  {format_age(backup.age_days(now))}"
    )


def render_report(result: RolloutResult) -> List[str]:
    counts = result.counts()
    lines = [
        f"[*] Rollout of {result.version or 'artifact'}: "
        f"{counts['succeeded']} succeeded "
        f"({counts['needs_restart']} need restart), "
        f"{counts['failed']} failed, {counts['not_attempted']} not attempted"
    ]

    for node, outcome in result.entries:
        if outcome.is_failure:
            lines.append(f"[-] {node.name}: {outcome.describe()}")
        elif outcome.reason:
            lines.append(f"[!] {node.name}: {outcome.describe()}")
        else:
            lines.append(f"[+] {node.name}: {outcome.describe()}")
        if outcome.cleanup_error:
            lines.append(f"[!] {node.name}: temporary file not removed: {outcome.cleanup_error}")

    for node in result.not_attempted:
        suffix = " (interrupted)" if node == result.interrupted_node else ""
        lines.append(f"[-] {node.name}: not attempted{suffix}")

    if result.aborted_reason:
        lines.append(f"[-] Rollout aborted: {result.aborted_reason}")
    return lines
