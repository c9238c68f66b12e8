"""Link orchestration for patch AOT snapshots."""

from __future__ import annotations

import shutil
import tempfile
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Protocol

from bundle_diff.logging import OPERATION_LINK, JsonlAuditLogger

EXIT_SUCCESS = 0
EXIT_SOFTWARE = 70
DEFAULT_DEBUG_INFO_PATH = "build/patch-debug.zip"

STATE_NOT_STARTED = "not_started"
STATE_CHECKING_PREREQUISITES = "checking_prerequisites"
STATE_LINKING = "linking"
STATE_SUCCEEDED = "succeeded"
STATE_FAILED = "failed"


class Linker(Protocol):
    """Protocol implemented by linker clients."""

    def is_link_debug_info_supported(self) -> bool:
        """Return True when the linker can dump debug information."""

    def link(
        self,
        *,
        base: Path,
        patch: Path,
        analyze_snapshot: Path,
        gen_snapshot: Path,
        kernel: Path,
        output_path: Path,
        working_directory: Path,
        dump_debug_info_path: Path | None = None,
        additional_args: Sequence[str] = (),
    ) -> float | None:
        """Link and return the reported link percentage."""


@dataclass(slots=True, frozen=True)
class LinkInputs:
    """Artifacts consumed by one link invocation."""

    release_artifact: Path
    patch_artifact: Path
    analyze_snapshot: Path
    gen_snapshot: Path
    kernel: Path
    output: Path
    working_directory: Path
    additional_args: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class LinkResult:
    """Outcome of one link invocation."""

    exit_code: int
    link_percentage: float | None
    state: str
    error_message: str | None = None
    debug_info_error: str | None = None
    transitions: tuple[str, ...] = field(default=(), compare=False)

    @property
    def succeeded(self) -> bool:
        return self.state == STATE_SUCCEEDED


class LinkOrchestrator:
    """Runs the linker over a release/patch pair and reports link coverage.

    Every run walks not_started -> checking_prerequisites -> linking ->
    succeeded|failed. Runs share no state; the debug info directory, when the
    linker supports one, is zipped to ``debug_info_path`` under the working
    directory and removed on every exit path.
    """

    def __init__(
        self,
        linker: Linker,
        *,
        debug_info_path: str = DEFAULT_DEBUG_INFO_PATH,
        audit_logger: JsonlAuditLogger | None = None,
    ) -> None:
        if PurePosixPath(debug_info_path).is_absolute() or Path(debug_info_path).is_absolute():
            raise ValueError("debug_info_path must be relative to the working directory.")
        self._linker = linker
        self._debug_info_path = debug_info_path
        self._audit_logger = audit_logger

    @property
    def linker(self) -> Linker:
        return self._linker

    def debug_info_destination(self, working_directory: Path) -> Path:
        return working_directory / self._debug_info_path

    def run(self, inputs: LinkInputs) -> LinkResult:
        """Check prerequisites, link, and report the outcome."""
        transitions = [STATE_NOT_STARTED, STATE_CHECKING_PREREQUISITES]
        missing = _missing_prerequisite(inputs)
        if missing is not None:
            return self._finish(transitions, STATE_FAILED, EXIT_SOFTWARE, None, missing)

        transitions.append(STATE_LINKING)
        debug_dir: Path | None = None
        debug_info_error: str | None = None
        try:
            if self._linker.is_link_debug_info_supported():
                debug_dir = Path(tempfile.mkdtemp(prefix="bundle-diff-link-"))
            link_percentage = self._linker.link(
                base=inputs.release_artifact,
                patch=inputs.patch_artifact,
                analyze_snapshot=inputs.analyze_snapshot,
                gen_snapshot=inputs.gen_snapshot,
                kernel=inputs.kernel,
                output_path=inputs.output,
                working_directory=inputs.working_directory,
                dump_debug_info_path=debug_dir,
                additional_args=inputs.additional_args,
            )
        except Exception as exc:
            state, exit_code, link_percentage = STATE_FAILED, EXIT_SOFTWARE, None
            error_message: str | None = f"Failed to link AOT files: {exc}"
        else:
            state, exit_code, error_message = STATE_SUCCEEDED, EXIT_SUCCESS, None
        finally:
            debug_info_error = self._archive_debug_info(debug_dir, inputs.working_directory)
        return self._finish(
            transitions,
            state,
            exit_code,
            link_percentage,
            error_message,
            debug_info_error=debug_info_error,
        )

    def _archive_debug_info(self, debug_dir: Path | None, working_directory: Path) -> str | None:
        """Zip the debug info directory and remove it; return an error message on failure."""
        if debug_dir is None:
            return None
        destination = self.debug_info_destination(working_directory)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(destination, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                for item in sorted(debug_dir.rglob("*")):
                    if item.is_file():
                        archive.write(item, arcname=item.relative_to(debug_dir).as_posix())
        except OSError as exc:
            return f"Unable to archive debug info to {destination}: {exc}"
        finally:
            shutil.rmtree(debug_dir, ignore_errors=True)
        return None

    def _finish(
        self,
        transitions: list[str],
        state: str,
        exit_code: int,
        link_percentage: float | None,
        error_message: str | None,
        *,
        debug_info_error: str | None = None,
    ) -> LinkResult:
        transitions.append(state)
        result = LinkResult(
            exit_code=exit_code,
            link_percentage=link_percentage,
            state=state,
            error_message=error_message,
            debug_info_error=debug_info_error,
            transitions=tuple(transitions),
        )
        if self._audit_logger is not None:
            self._audit_logger.record(
                OPERATION_LINK,
                ok=result.succeeded,
                error_code=None if result.succeeded else "LINK_FAILED",
                metadata={
                    "state": state,
                    "exit_code": exit_code,
                    "link_percentage": link_percentage,
                    "error_message_present": error_message is not None,
                    "debug_info_error_present": debug_info_error is not None,
                },
            )
        return result


def _missing_prerequisite(inputs: LinkInputs) -> str | None:
    checks = (
        ("patch AOT file", inputs.patch_artifact),
        ("release AOT file", inputs.release_artifact),
        ("analyze_snapshot", inputs.analyze_snapshot),
    )
    for label, path in checks:
        if not path.is_file():
            return f"Unable to find {label} at {path}"
    return None
