"""User interface components.

Key modules:
    - reporting: Rich summary of a reconciliation run
"""

from seva_sync.ui.reporting import (
    build_failures_text,
    build_summary_table,
    render_summary,
)

__all__ = [
    "build_failures_text",
    "build_summary_table",
    "render_summary",
]
