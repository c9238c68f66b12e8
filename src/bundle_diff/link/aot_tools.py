"""Client for the external AOT linker."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

Runner = Callable[..., subprocess.CompletedProcess]

DEBUG_INFO_FLAG = "--dump-debug-info"
LINK_SUCCESS_EVENT = "link_success"


@dataclass(slots=True, frozen=True)
class LinkerError(Exception):
    """Raised when the linker cannot be started or exits unsuccessfully."""

    message: str
    exit_code: int | None = None

    def __str__(self) -> str:
        return self.message


def parse_link_percentage(stdout: str) -> float | None:
    """Return the percentage from the last link_success JSON line, if any."""
    percentage: float | None = None
    for line in stdout.splitlines():
        stripped = line.strip()
        if not stripped.startswith("{"):
            continue
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            continue
        if not isinstance(payload, dict) or payload.get("type") != LINK_SUCCESS_EVENT:
            continue
        value = payload.get("link_percentage")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        percentage = float(value)
    return percentage


class AotTools:
    """Runs ``aot-tools link`` as a blocking subprocess."""

    def __init__(self, command: Sequence[str] = ("aot-tools",), runner: Runner = subprocess.run):
        if not command:
            raise ValueError("aot-tools command must not be empty.")
        self._command = tuple(command)
        self._runner = runner

    @property
    def command(self) -> tuple[str, ...]:
        return self._command

    def is_link_debug_info_supported(self) -> bool:
        """Return True when ``link --help`` advertises debug info dumping."""
        try:
            completed = self._runner(
                [*self._command, "link", "--help"],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError:
            return False
        output = f"{completed.stdout or ''}\n{completed.stderr or ''}"
        return DEBUG_INFO_FLAG in output

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
        """Link patch against base and return the reported link percentage."""
        command = [
            *self._command,
            "link",
            f"--base={base}",
            f"--patch={patch}",
            f"--analyze-snapshot={analyze_snapshot}",
            f"--gen-snapshot={gen_snapshot}",
            f"--kernel={kernel}",
            f"--output={output_path}",
            "--reporter=json",
        ]
        if dump_debug_info_path is not None:
            command.append(f"{DEBUG_INFO_FLAG}={dump_debug_info_path}")
        command.extend(additional_args)
        try:
            completed = self._runner(
                command,
                cwd=str(working_directory),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise LinkerError(message=f"Unable to start linker: {exc}") from exc
        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()
            raise LinkerError(
                message=f"Linker exited with code {completed.returncode}: {detail}",
                exit_code=completed.returncode,
            )
        return parse_link_percentage(completed.stdout or "")
