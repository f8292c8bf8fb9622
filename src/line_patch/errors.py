"""Classification codes for rejected edits."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Recoverable edit failure classes reported back to the caller."""

    INVALID_LINE_RANGE = "INVALID_LINE_RANGE"
    UNBALANCED_BRACES = "UNBALANCED_BRACES"
    DECLARATION_OUTSIDE_BLOCK = "DECLARATION_OUTSIDE_BLOCK"
    PATTERN_MISMATCH = "PATTERN_MISMATCH"
