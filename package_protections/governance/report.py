"""
Package Protections - Offense Report

Plain-text report of offenses grouped by the protection that produced them.
"""

from typing import Dict, List

from .configuration import Configuration
from .models import Offense


def group_offenses(offenses: List[Offense]) -> Dict[str, List[Offense]]:
    """Group offenses by protection identifier, keeping their order."""
    grouped: Dict[str, List[Offense]] = {}
    for offense in offenses:
        grouped.setdefault(offense.violation_type, []).append(offense)
    return grouped


def format_offenses(offenses: List[Offense], configuration: Configuration) -> str:
    """
    Render offenses as a report.

    Each group starts with the protection's humanized name and
    description, followed by one line per offense.

    Args:
        offenses: Offenses returned by `get_offenses`
        configuration: Configuration holding the protections that produced them

    Returns:
        The report text
    """
    if not offenses:
        return "[OK] No package protection offenses."

    lines = []
    grouped = group_offenses(offenses)
    for protection in configuration.protections:
        protection_offenses = grouped.get(protection.identifier)
        if not protection_offenses:
            continue

        lines.append(f"{protection.humanized_name} ({len(protection_offenses)}):")
        lines.append(protection.humanized_description.rstrip("\n"))
        for offense in protection_offenses:
            lines.append(f"  [{offense.package_name}] {offense.file}")
            lines.append(f"    {offense.message}")
        lines.append("")

    return "\n".join(lines).rstrip("\n")


def print_offenses(offenses: List[Offense], configuration: Configuration) -> None:
    """Print a human-readable offense report."""
    print(f"\n{'='*60}")
    print("PACKAGE PROTECTIONS REPORT")
    print(f"{'='*60}")
    print(format_offenses(offenses, configuration))
    print(f"\n{'='*60}\n")
