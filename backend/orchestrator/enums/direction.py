"""
Play queue navigation direction.
"""

from __future__ import annotations

from enum import Enum


class QueueDirection(str, Enum):
    """Direction of a play queue move requested by the reducer."""

    NEXT = "next"
    PREVIOUS = "previous"
