"""
Starter content for a fresh account.

Seeded only when the persistence service holds no subjects.
"""

from __future__ import annotations

# =============================================================================
# Default Subjects (label, icon)
# =============================================================================
DEFAULT_SUBJECTS: tuple[tuple[str, str], ...] = (
    ("Chemistry", "⚗️"),
    ("Physics", "⚛️"),
    ("Combined Maths", "📐"),
)

# =============================================================================
# Default Rows - past paper years added to every seeded subject
# =============================================================================
DEFAULT_ROW_NAMES: tuple[str, ...] = ("2015", "2016", "2017", "2018", "2019")

DEFAULT_ICON = "📘"
