"""Vagrant wrapper controlling the DiViMe virtual machine."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from ..exceptions import DivimeError
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

__all__ = ["SshResult", "VagrantVM"]


@dataclass(slots=True)
class SshResult:
    """Output of a command executed inside the VM."""

    command: str
    returncode: int
    lines: list[str]

    def contains(self, text: str) -> bool:
        return any(text in line for line in self.lines)


class VagrantVM:
    """Lifecycle and remote execution for the VM defined in ``divime_dir``."""

    def __init__(self, divime_dir: str | Path, *, vagrant_path: str = "vagrant") -> None:
        self.divime_dir = Path(divime_dir).expanduser().resolve()
        self.vagrant_path = vagrant_path

    @property
    def data_dir(self) -> Path:
        """Folder shared with the VM as ``data/``."""
        return self.divime_dir / "data"

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def status(self) -> str:
        """Return the machine state reported by vagrant, e.g. ``running``."""
        result = self._run(["status", "--machine-readable"])
        for line in result.stdout.splitlines():
            parts = line.split(",")
            if len(parts) >= 4 and parts[2] == "state":
                return parts[3]
        raise DivimeError(f"Could not read the VM state from vagrant output:\n{result.stdout}")

    def is_running(self) -> bool:
        return self.status() == "running"

    def start(self) -> None:
        LOGGER.info("Starting DiViMe VM in %s", self.divime_dir)
        self._run(["up"])

    def halt(self) -> None:
        LOGGER.info("Halting DiViMe VM in %s", self.divime_dir)
        self._run(["halt"])

    def ssh(self, command: str) -> SshResult:
        """Run ``command`` inside the VM.

        A non-zero exit status is reported in the result rather than raised because
        the DiViMe scripts signal partial failures only through their output.
        """
        result = self._run(["ssh", "-c", command], check=False)
        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        if result.returncode != 0:
            LOGGER.warning("'%s' exited with code %d inside the VM", command, result.returncode)
        return SshResult(command=command, returncode=result.returncode, lines=output.splitlines())

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _run(self, args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        command = [self.vagrant_path, *args]
        try:
            result = subprocess.run(  # noqa: S603 - command is constructed from trusted configuration
                command,
                cwd=self.divime_dir,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise DivimeError(f"vagrant executable not found: {self.vagrant_path}") from exc
        if check and result.returncode != 0:
            raise DivimeError(
                f"vagrant {' '.join(args)} failed with code {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        return result
