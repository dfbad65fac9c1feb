"""Running DiViMe analysis modules over a folder of audio files."""

from __future__ import annotations

import re
import shutil
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np

from ..annotations.rttm import combine_rttm, write_rttm
from ..exceptions import AvutilsError, DivimeError
from ..utils.io import ensure_dir
from ..utils.logging import get_logger
from .sox import Sox
from .vagrant import SshResult, VagrantVM

LOGGER = get_logger(__name__)

__all__ = [
    "SAD_MODULES",
    "DivimeRunner",
    "ProcessingRecord",
    "clean_stem",
    "estimate_minutes_left",
    "find_audio_files",
]

SAD_MODULES = {
    "noisemes": "noisemesSad.sh",
    "opensmile": "opensmileSad.sh",
    "tocombo": "tocomboSad.sh",
}
AUDIO_SUFFIXES = (".wav",)
KILLED_PATTERN = re.compile(r"\d{1,10} Killed")
MATLAB_NOMEM = "MATLAB:nomem"
_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9_\-]")


@dataclass(slots=True)
class ProcessingRecord:
    """Diagnostics for one audio file."""

    audio: Path
    size: int
    processed: bool = False
    minutes: float | None = None
    outlines: int | None = None
    output: str | None = None
    audiocopy: bool | None = None
    audioremove: bool | None = None
    resultscopy: bool | None = None
    resultsremove: bool | None = None
    killed: bool | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "audio": str(self.audio),
            "size": self.size,
            "processed": self.processed,
            "minutes": self.minutes,
            "outlines": self.outlines,
            "output": self.output,
            "audiocopy": self.audiocopy,
            "audioremove": self.audioremove,
            "resultscopy": self.resultscopy,
            "resultsremove": self.resultsremove,
            "killed": self.killed,
            "error": self.error,
        }


def clean_stem(stem: str) -> str:
    """Return a file stem that is safe to pass through the VM shell."""
    return _UNSAFE_CHARACTERS.sub("_", stem)


def find_audio_files(audio_dir: str | Path) -> list[Path]:
    """Return audio files below ``audio_dir`` in a stable order."""
    root = Path(audio_dir).expanduser().resolve()
    if root.is_file():
        return [root]
    return sorted(
        path for path in root.rglob("*") if path.is_file() and path.suffix.lower() in AUDIO_SUFFIXES
    )


def estimate_minutes_left(records: Sequence[ProcessingRecord]) -> float | None:
    """Predict the remaining minutes from a linear fit of minutes against file size.

    Returns None until at least two files have been timed.
    """
    done = [record for record in records if record.minutes is not None]
    pending = [record.size for record in records if record.minutes is None]
    if len(done) < 2 or not pending:
        return None
    sizes = np.array([record.size for record in done], dtype=float)
    minutes = np.array([record.minutes for record in done], dtype=float)
    if np.ptp(sizes) == 0:
        predicted = np.full(len(pending), minutes.mean())
    else:
        slope, intercept = np.polyfit(sizes, minutes, 1)
        predicted = slope * np.asarray(pending, dtype=float) + intercept
    return round(float(predicted.sum()), 1)


class DivimeRunner:
    """Copies audio into the DiViMe VM, runs a module and collects its RTTM output.

    Files are processed one at a time since every module works on the shared
    ``data/`` folder. Result files are copied next to the audio as
    ``<prefix><audio stem>.rttm``.
    """

    def __init__(
        self,
        vm: VagrantVM,
        *,
        sox: Sox | None = None,
        vm_start: bool = True,
        vm_shutdown: bool = True,
    ) -> None:
        self.vm = vm
        self.sox = sox
        self.vm_start = vm_start
        self.vm_shutdown = vm_shutdown

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def run_sad(
        self,
        audio_dir: str | Path,
        module: str = "noisemes",
        *,
        split_audio: float | None = None,
        overwrite: bool = False,
    ) -> list[ProcessingRecord]:
        """Run a speech activity detection module (``noisemes``, ``opensmile``, ``tocombo``).

        ``split_audio`` cuts each file into chunks of that many seconds before
        processing; the chunk results are merged into a single RTTM.
        """
        try:
            script = SAD_MODULES[module]
        except KeyError:
            raise ValueError(
                f"Unknown SAD module {module!r}; expected one of {', '.join(SAD_MODULES)}"
            ) from None
        if split_audio is not None and split_audio <= 0:
            split_audio = None
        if split_audio is not None and self.sox is None:
            raise DivimeError("Splitting audio requires a configured sox executable.")

        return self._run_batch(
            audio_dir,
            command=f"{script} data/",
            prefix=f"{module}Sad_",
            module=module,
            split_audio=split_audio,
            overwrite=overwrite,
        )

    def run_talkertype(
        self,
        audio_dir: str | Path,
        *,
        marvinator: bool = False,
        overwrite: bool = False,
    ) -> list[ProcessingRecord]:
        """Run the yunitator talker type module, optionally the English model."""
        if marvinator:
            command, prefix = "yunitate.sh data/ english", "yunitator_english_"
        else:
            command, prefix = "yunitate.sh data/", "yunitator_old_"
        return self._run_batch(
            audio_dir,
            command=command,
            prefix=prefix,
            module="yunitator",
            split_audio=None,
            overwrite=overwrite,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _run_batch(
        self,
        audio_dir: str | Path,
        *,
        command: str,
        prefix: str,
        module: str,
        split_audio: float | None,
        overwrite: bool,
    ) -> list[ProcessingRecord]:
        files = find_audio_files(audio_dir)
        records = [ProcessingRecord(audio=path, size=path.stat().st_size) for path in files]
        LOGGER.info("Running %s on %d audio file(s)", module, len(records))

        if self.vm_start and not self.vm.is_running():
            self.vm.start()
        try:
            for record in records:
                started = time.monotonic()
                try:
                    self._process_file(
                        record,
                        command=command,
                        prefix=prefix,
                        module=module,
                        split_audio=split_audio,
                        overwrite=overwrite,
                    )
                except (AvutilsError, OSError) as exc:
                    LOGGER.error("Failed to process %s: %s", record.audio, exc)
                    record.error = str(exc)
                record.minutes = round((time.monotonic() - started) / 60.0, 3)

                remaining = estimate_minutes_left(records)
                if remaining is not None:
                    LOGGER.info("Expected time until finish: %.1f minutes", remaining)
        finally:
            if self.vm_shutdown:
                self.vm.halt()
        return records

    def _process_file(
        self,
        record: ProcessingRecord,
        *,
        command: str,
        prefix: str,
        module: str,
        split_audio: float | None,
        overwrite: bool,
    ) -> None:
        audio = record.audio
        stem = clean_stem(audio.stem)
        output_name = f"{prefix}{audio.stem}.rttm"
        output_to = audio.parent / output_name
        output_from = self.vm.data_dir / f"{prefix}{stem}.rttm"

        if output_to.exists() and not overwrite:
            LOGGER.info("Skipping %s, %s already exists", audio.name, output_name)
            return

        ensure_dir(self.vm.data_dir)
        copies: list[Path] = []
        chunk_outputs: list[Path] = []
        completed = False
        try:
            if split_audio is not None:
                assert self.sox is not None
                copies = self.sox.split_audio(audio, split_audio, self.vm.data_dir, stem=stem)
            else:
                copies = [self.vm.data_dir / f"{stem}{audio.suffix.lower()}"]
                shutil.copyfile(audio, copies[0])
            record.audiocopy = all(path.exists() for path in copies)
            if split_audio is not None:
                chunk_outputs = [self.vm.data_dir / f"{prefix}{path.stem}.rttm" for path in copies]

            result = self.vm.ssh(command)

            failure = _module_failure(module, result)
            if failure:
                LOGGER.warning("%s: %s", audio.name, failure)
                record.error = failure
                return

            if split_audio is not None:
                present = [path for path in chunk_outputs if path.exists()]
                combined = combine_rttm(present, split_audio, file_id=audio.stem)
                write_rttm(combined, output_from)
            completed = True
        finally:
            for path in copies:
                path.unlink(missing_ok=True)
            record.audioremove = not any(path.exists() for path in copies)
            # Leftovers in data/ would be picked up by the next module run.
            for path in chunk_outputs:
                path.unlink(missing_ok=True)
            if not completed:
                output_from.unlink(missing_ok=True)

        if not output_from.exists():
            raise DivimeError(f"{module} produced no output for {audio.name}")

        with output_from.open("r", encoding="utf-8") as handle:
            record.outlines = sum(1 for _ in handle)
        shutil.copyfile(output_from, output_to)
        record.resultscopy = output_to.exists()
        output_from.unlink()
        record.resultsremove = not output_from.exists()

        if module == "opensmile":
            (self.vm.data_dir / f"{stem}.txt").unlink(missing_ok=True)

        record.output = output_name
        record.processed = True
        record.killed = any(KILLED_PATTERN.search(line) for line in result.lines)
        if record.killed:
            LOGGER.warning(
                "[POTENTIAL PROBLEM] %s  -->  %s (process killed)", audio.name, output_name
            )
        else:
            LOGGER.info("%s  -->  %s", audio.name, output_name)


def _module_failure(module: str, result: SshResult) -> str | None:
    if module != "tocombo":
        return None
    if result.contains(MATLAB_NOMEM):
        return "tocombo ran out of memory in MATLAB; consider splitting the audio"
    if any(KILLED_PATTERN.search(line) for line in result.lines):
        return "tocombo process was killed; consider splitting the audio"
    return None
