"""sox wrapper for cutting audio into fixed-length chunks."""

from __future__ import annotations

import subprocess
from pathlib import Path

from ..exceptions import DivimeError
from ..utils.io import ensure_dir
from ..utils.logging import get_logger

LOGGER = get_logger(__name__)

__all__ = ["Sox"]


class Sox:
    """Thin wrapper around the sox command line tool."""

    def __init__(self, sox_path: str = "sox") -> None:
        self.sox_path = sox_path

    def split_audio(
        self,
        source: str | Path,
        chunk_duration: float,
        output_dir: str | Path,
        *,
        stem: str | None = None,
    ) -> list[Path]:
        """Split ``source`` into chunks of ``chunk_duration`` seconds.

        Chunks are written as ``<stem>_001.wav``, ``<stem>_002.wav`` ... in
        ``output_dir`` and returned in playback order.
        """
        if chunk_duration <= 0:
            raise ValueError(f"chunk_duration must be > 0, got {chunk_duration}")

        source_path = Path(source)
        target_dir = ensure_dir(output_dir)
        chunk_stem = stem or source_path.stem

        command = [
            self.sox_path,
            str(source_path),
            str(target_dir / f"{chunk_stem}_.wav"),
            "trim",
            "0",
            f"{chunk_duration:g}",
            ":",
            "newfile",
            ":",
            "restart",
        ]
        try:
            result = subprocess.run(  # noqa: S603 - command is constructed from trusted configuration
                command,
                check=False,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise DivimeError(f"sox executable not found: {self.sox_path}") from exc
        if result.returncode != 0:
            raise DivimeError(f"sox failed with code {result.returncode}: {result.stderr.strip()}")

        chunks = sorted(target_dir.glob(f"{chunk_stem}_[0-9]*.wav"))
        if not chunks:
            raise DivimeError(f"sox produced no chunks for {source_path}")
        LOGGER.debug("Split %s into %d chunks of %gs", source_path.name, len(chunks), chunk_duration)
        return chunks
