from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from sheetforge.config.loader import ConfigError, PipelineConfig, load_config
from sheetforge.errors import FileTooLargeError, InvalidFormatError, PipelineError, ValidationFailedError
from sheetforge.excel.reader import analyze_workbooks
from sheetforge.logging.init import log_summary, set_debug, setup_logging
from sheetforge.models.input_file import InputFile
from sheetforge.models.processing_result import format_file_size
from sheetforge.models.workbook_analysis import AnalysisSession
from sheetforge.services.combiner import current_sheet_for
from sheetforge.services.orchestrator import combine_files, split_workbook
from sheetforge.services.progress import ProgressTracker
from sheetforge.services.summary import render_summary_line
from sheetforge.services.validator import validate_files

"""CLI entrypoint.

Subcommands:
- combine FILE...   merge every worksheet into <first>_combined.xlsx
- split FILE        one PDF per worksheet, packaged as <file>_split_PDFs.zip
- inspect FILE...   print per-sheet metadata

Config resolution: --config, else $SHEETFORGE_CONFIG (a .env file in the
working directory is loaded first), else built-in defaults.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_INVALID_INPUT = 2

CONFIG_ENV_VAR = "SHEETFORGE_CONFIG"

_INPUT_ERRORS = (ValidationFailedError, InvalidFormatError, FileTooLargeError)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sheetforge", description="Combine Excel workbooks or split sheets into PDFs")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help="YAML config file")
    sub = p.add_subparsers(dest="command", required=True)

    combine = sub.add_parser("combine", help="Merge all worksheets of all files into one workbook")
    combine.add_argument("files", nargs="+", type=Path)
    combine.add_argument("--name", default=None, help="Base name of the output (default: first file)")
    combine.add_argument("--output-dir", type=Path, default=Path("."))

    split = sub.add_parser("split", help="Render worksheets to PDFs packaged in a zip")
    split.add_argument("file", type=Path)
    split.add_argument("--sheet", action="append", dest="sheets", default=None,
                       help="Worksheet to render (repeatable; default: all)")
    split.add_argument("--output-dir", type=Path, default=Path("."))
    split.add_argument("--workers", type=int, default=None, help="Render worksheets concurrently")

    inspect = sub.add_parser("inspect", help="Print worksheet metadata")
    inspect.add_argument("files", nargs="+", type=Path)
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> PipelineConfig:
    if args.config is not None:
        return load_config(args.config)
    env_path = os.getenv(CONFIG_ENV_VAR)
    return load_config(Path(env_path) if env_path else None)


def _write_output(output_dir: Path, file_name: str, content: bytes) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / file_name
    target.write_bytes(content)
    return target


def _run_combine(args: argparse.Namespace, cfg: PipelineConfig, logger) -> int:
    files = [InputFile.from_path(p) for p in args.files]
    session = AnalysisSession()
    with ProgressTracker(description="Combining") as tracker:
        def on_progress(percent: int) -> None:
            tracker(percent)
            current = current_sheet_for(session.analyses, percent)
            tracker.describe(current[1].name if current else None)

        encoded, result = combine_files(
            files, session=session, config=cfg, base_file_name=args.name, on_progress=on_progress
        )
    target = _write_output(args.output_dir, encoded.file_name, encoded.content)
    logger.info(
        f"{encoded.sheet_count} worksheets combined -> {target} ({format_file_size(encoded.size)})"
    )
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS


def _run_split(args: argparse.Namespace, cfg: PipelineConfig, logger) -> int:
    file = InputFile.from_path(args.file)
    with ProgressTracker(description="Rendering") as tracker:
        artifact, result = split_workbook(
            file, args.sheets, config=cfg, on_progress=tracker, max_workers=args.workers
        )
    target = _write_output(args.output_dir, artifact.file_name, artifact.content)
    logger.info(f"{result.sheets} documents packaged -> {target} ({format_file_size(artifact.size)})")
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS


def _run_inspect(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    files = [InputFile.from_path(p) for p in args.files]
    validate_files(files, max_size_bytes=cfg.max_file_size_bytes)
    analyses = analyze_workbooks(files, AnalysisSession())
    for analysis in analyses:
        print(f"FILE: {analysis.file_name} id={analysis.analysis_id} size={format_file_size(analysis.file_size)}")
        for ws in analysis.worksheets:
            print(
                f"  SHEET[{ws.index}]: {ws.name} rows={ws.row_count} cols={ws.column_count}"
                f" has_data={ws.has_data}"
            )
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when argv is None; main([]) from tests must not pick up pytest's flags
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    load_dotenv(dotenv_path=Path(".env"), override=False)

    if args.debug:
        set_debug(logger)

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        if args.command == "combine":
            return _run_combine(args, cfg, logger)
        if args.command == "split":
            return _run_split(args, cfg, logger)
        return _run_inspect(args, cfg)
    except _INPUT_ERRORS as e:
        logger.error(f"invalid input: {e}")
        return EXIT_INVALID_INPUT
    except PipelineError as e:
        logger.error(f"{args.command}: {e}")
        return EXIT_FATAL
    except OSError as e:
        logger.error(f"{args.command}: failed to write output: {e}")
        return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
