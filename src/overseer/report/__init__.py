"""
Reporting for Overseer.

Rich console rendering of supervision results, guardian decisions,
tool lists and supervisor configurations.
"""

from overseer.report.console import (
    print_guardian_decision,
    print_supervision_result,
    print_supervisor_configs,
    print_tool_list,
)

__all__ = [
    "print_guardian_decision",
    "print_supervision_result",
    "print_supervisor_configs",
    "print_tool_list",
]
