"""Command-line entrypoints for avutils."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Optional

import typer

from .config import load_config
from .convert import elan_to_rttm
from .divime import DivimeRunner, ProcessingRecord, Sox, VagrantVM
from .exceptions import AvutilsError, ConfigError
from .scoring import SUMMARY_COLUMNS, EvaluationResult, FrameMatrix, evaluate_roles
from .utils.io import save_json
from .utils.logging import configure_logging, set_log_level

app = typer.Typer(help="Convert annotations, run DiViMe modules and score annotations.")


def _load_settings(env: str, verbose: bool = False) -> dict[str, Any]:
    try:
        config = load_config(env)
    except (ConfigError, FileNotFoundError) as exc:
        typer.echo(f"Failed to load configuration: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    configure_logging(config.get("logging"))
    if verbose:
        set_log_level("DEBUG")
    return config


def _parse_role_options(values: list[str] | None) -> dict[str, list[str]] | None:
    """Turn ``ROLE=LABEL[,LABEL...]`` options into a role mapping."""
    if not values:
        return None
    roles: dict[str, list[str]] = {}
    for value in values:
        role, separator, labels = value.partition("=")
        if not separator or not role.strip() or not labels.strip():
            raise typer.BadParameter(f"Expected ROLE=LABEL[,LABEL...], got {value!r}")
        roles.setdefault(role.strip(), []).extend(
            label.strip() for label in labels.split(",") if label.strip()
        )
    return roles


def _format_number(value: Any) -> str:
    if isinstance(value, float):
        return "NaN" if math.isnan(value) else f"{value:.3f}"
    return str(value)


def _echo_summary(result: EvaluationResult) -> None:
    widths = {column: max(len(column), 9) for column in SUMMARY_COLUMNS}
    rows = result.to_rows()
    for row in rows:
        widths["role"] = max(widths["role"], len(str(row["role"])))
    typer.echo("  ".join(column.ljust(widths[column]) for column in SUMMARY_COLUMNS))
    for row in rows:
        typer.echo(
            "  ".join(_format_number(row[column]).ljust(widths[column]) for column in SUMMARY_COLUMNS)
        )
    typer.echo(
        f"frames: {result.n_frames}  resolution: {result.resolution:g}s  "
        f"overall accuracy: {_format_number(result.overall_accuracy)}"
    )


def _echo_records(records: list[ProcessingRecord]) -> None:
    processed = sum(1 for record in records if record.processed)
    failed = [record for record in records if record.error]
    typer.echo(f"{processed}/{len(records)} file(s) processed")
    for record in failed:
        typer.echo(f"  {record.audio}: {record.error}", err=True)


@app.command()
def elan2rttm(
    paths: list[Path] = typer.Argument(..., help="ELAN (.eaf) files to convert."),
    outpath: Optional[Path] = typer.Option(
        None,
        "--outpath",
        "-o",
        help="Output directory (defaults to the folder of each input).",
    ),
    include_dependents: bool = typer.Option(
        False,
        "--include-dependents/--drop-dependents",
        help="Keep dependent tiers (names containing '@').",
    ),
    merge: Optional[list[str]] = typer.Option(
        None,
        "--merge",
        "-m",
        help="Rename tiers, e.g. --merge FEM=FA1,FA2 (repeatable).",
    ),
    env: str = typer.Option("dev", "--env", help="Configuration environment to load."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages."),
) -> None:
    """Convert ELAN files to RTTM."""
    _load_settings(env, verbose)
    try:
        records = elan_to_rttm(
            paths,
            outpath=outpath,
            include_dependents=include_dependents,
            merge_tiers=_parse_role_options(merge),
        )
    except AvutilsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    for record in records:
        typer.echo(f"{record.file_in}  -->  {record.out_location / record.file_out}")


@app.command()
def evaluate(
    test: Path = typer.Argument(..., help="Annotation to score (RTTM or ELAN)."),
    reference: Path = typer.Argument(..., help="Reference annotation (RTTM or ELAN)."),
    resolution: Optional[float] = typer.Option(
        None, "--resolution", "-r", help="Frame length in seconds (default from config)."
    ),
    duration: Optional[float] = typer.Option(
        None, "--duration", "-d", help="Duration in seconds (default: latest interval end)."
    ),
    role: Optional[list[str]] = typer.Option(
        None,
        "--role",
        help="Role mapping ROLE=LABEL[,LABEL...] applied to both sides (repeatable).",
    ),
    test_role: Optional[list[str]] = typer.Option(
        None, "--test-role", help="Role mapping for the test side only (repeatable)."
    ),
    ref_role: Optional[list[str]] = typer.Option(
        None, "--ref-role", help="Role mapping for the reference side only (repeatable)."
    ),
    raw_labels: bool = typer.Option(
        False, "--raw-labels", help="Score raw tier labels instead of configured roles."
    ),
    test_ignore: Optional[list[str]] = typer.Option(
        None, "--test-ignore", help="Test label excluded from role scoring (repeatable)."
    ),
    ref_ignore: Optional[list[str]] = typer.Option(
        None, "--ref-ignore", help="Reference label excluded from role scoring (repeatable)."
    ),
    allspeech: Optional[bool] = typer.Option(
        None, "--allspeech/--no-allspeech", help="Also score any-speech detection."
    ),
    frames: bool = typer.Option(
        False, "--frames", help="Write the frame-by-frame matrix instead of a summary."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write results to a .csv or .json file."
    ),
    env: str = typer.Option("dev", "--env", help="Configuration environment to load."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages."),
) -> None:
    """Score a test annotation against a reference annotation."""
    config = _load_settings(env, verbose)
    settings = config.get("evaluation", {})

    shared_roles = None if raw_labels else _parse_role_options(role) or settings.get("roles")
    test_roles = _parse_role_options(test_role) or shared_roles
    ref_roles = _parse_role_options(ref_role) or shared_roles

    if frames and output is None:
        typer.echo("--frames requires --output.", err=True)
        raise typer.Exit(code=2)

    try:
        result = evaluate_roles(
            test,
            reference,
            resolution=settings.get("resolution", 1.0) if resolution is None else resolution,
            duration=duration,
            test_roles=test_roles,
            ref_roles=ref_roles,
            test_ignore=test_ignore or settings.get("test_ignore", []),
            ref_ignore=ref_ignore or settings.get("ref_ignore", []),
            allspeech=settings.get("allspeech", False) if allspeech is None else allspeech,
            summarize=not frames,
        )
    except (AvutilsError, ValueError, FileNotFoundError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc

    if isinstance(result, FrameMatrix):
        assert output is not None
        result.to_csv(output)
        typer.echo(f"Wrote {len(result)} frames to {output}")
        return

    _echo_summary(result)
    if output is not None:
        if output.suffix.lower() == ".json":
            result.to_json(output)
        else:
            result.to_csv(output)
        typer.echo(f"Wrote summary to {output}")


def _build_runner(config: dict[str, Any], divime_dir: Optional[Path]) -> DivimeRunner:
    settings = config.get("divime", {})
    root = divime_dir or settings.get("root")
    if not root:
        typer.echo("No DiViMe folder given (use --divime or divime.root).", err=True)
        raise typer.Exit(code=2)
    vm = VagrantVM(root, vagrant_path=settings.get("vagrant_path", "vagrant"))
    return DivimeRunner(
        vm,
        sox=Sox(settings.get("sox_path", "sox")),
        vm_start=settings.get("vm_start", True),
        vm_shutdown=settings.get("vm_shutdown", True),
    )


@app.command()
def sad(
    audio_dir: Path = typer.Argument(..., help="Folder (or single file) with audio to process."),
    module: str = typer.Option(
        "noisemes", "--module", help="SAD module: noisemes, opensmile or tocombo."
    ),
    divime_dir: Optional[Path] = typer.Option(None, "--divime", help="DiViMe folder."),
    split: Optional[float] = typer.Option(
        None, "--split", help="Process audio in chunks of this many seconds."
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace existing results."),
    log_file: Optional[Path] = typer.Option(
        None, "--log", help="Write per-file diagnostics as JSON."
    ),
    env: str = typer.Option("dev", "--env", help="Configuration environment to load."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages."),
) -> None:
    """Run a DiViMe speech activity detection module."""
    runner = _build_runner(_load_settings(env, verbose), divime_dir)
    try:
        records = runner.run_sad(audio_dir, module, split_audio=split, overwrite=overwrite)
    except (AvutilsError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    _echo_records(records)
    if log_file is not None:
        save_json([record.to_dict() for record in records], log_file)


@app.command()
def talkertype(
    audio_dir: Path = typer.Argument(..., help="Folder (or single file) with audio to process."),
    divime_dir: Optional[Path] = typer.Option(None, "--divime", help="DiViMe folder."),
    marvinator: bool = typer.Option(
        False, "--marvinator", help="Use the English yunitator model."
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace existing results."),
    log_file: Optional[Path] = typer.Option(
        None, "--log", help="Write per-file diagnostics as JSON."
    ),
    env: str = typer.Option("dev", "--env", help="Configuration environment to load."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages."),
) -> None:
    """Run the DiViMe talker type module."""
    runner = _build_runner(_load_settings(env, verbose), divime_dir)
    try:
        records = runner.run_talkertype(audio_dir, marvinator=marvinator, overwrite=overwrite)
    except AvutilsError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    _echo_records(records)
    if log_file is not None:
        save_json([record.to_dict() for record in records], log_file)


def main() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    main()
