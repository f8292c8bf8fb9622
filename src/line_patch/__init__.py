"""Incremental line-based patch engine."""

from logging import NullHandler, getLogger

from .engine import (
    EditRequest,
    EditResult,
    EditStats,
    FingerprintMode,
    LineReplaceEngine,
    execute,
)
from .errors import ErrorKind
from .offsets import FileOffsetState, LineOffsetTracker, OffsetContractError, ReplacementRecord
from .session import AppliedEdit, BatchResult, EditSession, ProposedEdit

getLogger(__name__).addHandler(NullHandler())

__all__ = [
    "AppliedEdit",
    "BatchResult",
    "EditRequest",
    "EditResult",
    "EditSession",
    "EditStats",
    "ErrorKind",
    "FileOffsetState",
    "FingerprintMode",
    "LineOffsetTracker",
    "LineReplaceEngine",
    "OffsetContractError",
    "ProposedEdit",
    "ReplacementRecord",
    "execute",
]
