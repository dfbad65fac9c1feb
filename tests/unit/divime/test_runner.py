"""Tests for running DiViMe modules over audio folders."""

from __future__ import annotations

from pathlib import Path

import pytest

from avutils.annotations.rttm import read_rttm
from avutils.divime.runner import (
    DivimeRunner,
    ProcessingRecord,
    clean_stem,
    estimate_minutes_left,
    find_audio_files,
)
from avutils.divime.vagrant import SshResult
from avutils.exceptions import DivimeError


class FakeVM:
    """Stands in for VagrantVM; ``outputs`` maps a command to the files it creates."""

    def __init__(self, root: Path, *, running: bool = True, lines: list[str] | None = None) -> None:
        self.data_dir = root / "data"
        self.data_dir.mkdir(parents=True)
        self.running = running
        self.lines = lines or []
        self.calls: list[str] = []
        self.write_outputs = True
        self.prefix = "yunitator_old_"
        self.malformed: set[str] = set()

    def is_running(self) -> bool:
        return self.running

    def start(self) -> None:
        self.calls.append("start")
        self.running = True

    def halt(self) -> None:
        self.calls.append("halt")

    def ssh(self, command: str) -> SshResult:
        self.calls.append(command)
        if self.write_outputs:
            for audio in sorted(self.data_dir.glob("*.wav")):
                rttm = self.data_dir / f"{self.prefix}{audio.stem}.rttm"
                if audio.stem in self.malformed:
                    rttm.write_text(
                        f"SPEAKER {audio.stem} 1 abc 2.0 <NA> <NA> CHI 1\n", encoding="utf-8"
                    )
                    continue
                rttm.write_text(
                    f"SPEAKER {audio.stem} 1 1.0 2.0 <NA> <NA> CHI 1\n"
                    f"SPEAKER {audio.stem} 1 4.0 0.5 <NA> <NA> FEM 1\n",
                    encoding="utf-8",
                )
        return SshResult(command=command, returncode=0, lines=list(self.lines))


class FakeSox:
    def __init__(self) -> None:
        self.calls: list[tuple[Path, float]] = []

    def split_audio(self, source, chunk_duration, output_dir, *, stem=None):
        self.calls.append((Path(source), chunk_duration))
        chunks = []
        for index in (1, 2):
            chunk = Path(output_dir) / f"{stem}_{index:03d}.wav"
            chunk.write_bytes(b"RIFF")
            chunks.append(chunk)
        return chunks


@pytest.fixture()
def audio_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "audio"
    (folder / "sub").mkdir(parents=True)
    (folder / "rec 01.wav").write_bytes(b"RIFF" * 10)
    (folder / "sub" / "rec02.WAV").write_bytes(b"RIFF" * 20)
    (folder / "notes.txt").write_text("not audio")
    return folder


def test_find_audio_files_and_clean_stem(audio_dir: Path) -> None:
    files = find_audio_files(audio_dir)
    assert [path.name for path in files] == ["rec 01.wav", "rec02.WAV"]
    assert clean_stem("rec 01(b)") == "rec_01_b_"


def test_talkertype_copies_results_back_and_cleans_up(audio_dir: Path, tmp_path: Path) -> None:
    vm = FakeVM(tmp_path / "divime")
    runner = DivimeRunner(vm)

    records = runner.run_talkertype(audio_dir)

    assert [record.processed for record in records] == [True, True]
    assert records[0].output == "yunitator_old_rec 01.rttm"
    assert records[0].outlines == 2
    assert records[0].audiocopy and records[0].audioremove
    assert records[0].resultscopy and records[0].resultsremove
    assert records[0].killed is False
    assert (audio_dir / "yunitator_old_rec 01.rttm").exists()
    assert (audio_dir / "sub" / "yunitator_old_rec02.rttm").exists()
    assert list(vm.data_dir.iterdir()) == []
    assert vm.calls == ["yunitate.sh data/", "yunitate.sh data/", "halt"]


def test_marvinator_uses_english_model(audio_dir: Path, tmp_path: Path) -> None:
    vm = FakeVM(tmp_path / "divime", running=False)
    vm.prefix = "yunitator_english_"
    runner = DivimeRunner(vm, vm_shutdown=False)

    records = runner.run_talkertype(audio_dir / "rec 01.wav", marvinator=True)

    assert vm.calls == ["start", "yunitate.sh data/ english"]
    assert records[0].output == "yunitator_english_rec 01.rttm"


def test_existing_results_are_skipped(audio_dir: Path, tmp_path: Path) -> None:
    (audio_dir / "yunitator_old_rec 01.rttm").write_text("keep me")
    vm = FakeVM(tmp_path / "divime")

    records = DivimeRunner(vm).run_talkertype(audio_dir)

    assert [record.processed for record in records] == [False, True]
    assert (audio_dir / "yunitator_old_rec 01.rttm").read_text() == "keep me"
    assert records[0].minutes is not None


def test_sad_with_split_audio_merges_chunk_results(audio_dir: Path, tmp_path: Path) -> None:
    vm = FakeVM(tmp_path / "divime")
    vm.prefix = "noisemesSad_"
    sox = FakeSox()
    runner = DivimeRunner(vm, sox=sox)

    records = runner.run_sad(audio_dir / "sub", "noisemes", split_audio=60)

    assert records[0].processed
    assert sox.calls == [(audio_dir.resolve() / "sub" / "rec02.WAV", 60)]
    merged = read_rttm(audio_dir / "sub" / "noisemesSad_rec02.rttm")
    assert [interval.start for interval in merged] == [1.0, 4.0, 61.0, 64.0]
    assert merged.file_id == "rec02"
    assert list(vm.data_dir.iterdir()) == []


def test_tocombo_memory_error_is_recorded(audio_dir: Path, tmp_path: Path) -> None:
    vm = FakeVM(tmp_path / "divime", lines=["MATLAB:nomem"])
    vm.prefix = "tocomboSad_"

    records = DivimeRunner(vm).run_sad(audio_dir / "sub", "tocombo")

    assert not records[0].processed
    assert "memory" in records[0].error
    assert not (audio_dir / "sub" / "tocomboSad_rec02.rttm").exists()
    assert list(vm.data_dir.iterdir()) == []


def test_killed_process_is_flagged(audio_dir: Path, tmp_path: Path) -> None:
    vm = FakeVM(tmp_path / "divime", lines=["./run.sh: line 3: 2451 Killed"])
    vm.prefix = "noisemesSad_"

    records = DivimeRunner(vm).run_sad(audio_dir / "sub", "noisemes")

    assert records[0].processed
    assert records[0].killed is True


def test_missing_output_is_recorded_and_batch_continues(audio_dir: Path, tmp_path: Path) -> None:
    vm = FakeVM(tmp_path / "divime")
    vm.write_outputs = False

    records = DivimeRunner(vm).run_talkertype(audio_dir)

    assert all("no output" in record.error for record in records)
    assert vm.calls[-1] == "halt"


def test_invalid_sad_arguments(audio_dir: Path, tmp_path: Path) -> None:
    runner = DivimeRunner(FakeVM(tmp_path / "divime"))
    with pytest.raises(ValueError):
        runner.run_sad(audio_dir, "whisper")
    with pytest.raises(DivimeError):
        runner.run_sad(audio_dir, "noisemes", split_audio=120)


def test_estimate_minutes_left_fits_size() -> None:
    records = [
        ProcessingRecord(audio=Path("a.wav"), size=100, minutes=1.0),
        ProcessingRecord(audio=Path("b.wav"), size=200, minutes=2.0),
        ProcessingRecord(audio=Path("c.wav"), size=300),
        ProcessingRecord(audio=Path("d.wav"), size=400),
    ]
    assert estimate_minutes_left(records) == pytest.approx(7.0)
    assert estimate_minutes_left(records[:1] + records[2:]) is None


def test_malformed_chunk_result_is_recorded_and_cleaned_up(
    audio_dir: Path, tmp_path: Path
) -> None:
    vm = FakeVM(tmp_path / "divime")
    vm.prefix = "noisemesSad_"
    vm.malformed = {"rec_01_001"}
    runner = DivimeRunner(vm, sox=FakeSox())

    records = runner.run_sad(audio_dir, "noisemes", split_audio=60)

    assert not records[0].processed
    assert "noisemesSad_rec_01_001.rttm" in records[0].error
    assert records[0].audioremove is True
    assert records[1].processed
    assert (audio_dir / "sub" / "noisemesSad_rec02.rttm").exists()
    assert not (audio_dir / "noisemesSad_rec 01.rttm").exists()
    assert list(vm.data_dir.iterdir()) == []
    assert vm.calls[-1] == "halt"
