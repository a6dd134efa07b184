"""
Invalid fragment handling policy.

Rules:
- Pure enumeration; the reducer interprets it.
"""

from __future__ import annotations

from enum import Enum


class InvalidFragmentPolicy(str, Enum):
    """
    What the reducer does with a fragment that fails validation.

    DROP:
        Log and discard the fragment; the session continues and the final
        audio is silently shorter. Matches the deployed client behavior.

    ABORT:
        Fail the whole session (FAILED), close the connection and notify
        the user.
    """

    DROP = "drop"
    ABORT = "abort"
