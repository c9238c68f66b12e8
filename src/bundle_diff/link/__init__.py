"""Patch link orchestration."""

from .aot_tools import AotTools, LinkerError, parse_link_percentage
from .orchestrator import (
    DEFAULT_DEBUG_INFO_PATH,
    EXIT_SOFTWARE,
    EXIT_SUCCESS,
    STATE_CHECKING_PREREQUISITES,
    STATE_FAILED,
    STATE_LINKING,
    STATE_NOT_STARTED,
    STATE_SUCCEEDED,
    Linker,
    LinkInputs,
    LinkOrchestrator,
    LinkResult,
)

__all__ = [
    "AotTools",
    "DEFAULT_DEBUG_INFO_PATH",
    "EXIT_SOFTWARE",
    "EXIT_SUCCESS",
    "LinkInputs",
    "LinkOrchestrator",
    "LinkResult",
    "Linker",
    "LinkerError",
    "STATE_CHECKING_PREREQUISITES",
    "STATE_FAILED",
    "STATE_LINKING",
    "STATE_NOT_STARTED",
    "STATE_SUCCEEDED",
    "parse_link_percentage",
]
