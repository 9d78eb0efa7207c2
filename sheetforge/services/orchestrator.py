from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime

from ..config.loader import PipelineConfig
from ..excel.reader import analyze_workbook, analyze_workbooks
from ..excel.writer import encode_workbook
from ..models.artifacts import DownloadArtifact, EncodedWorkbook
from ..models.input_file import InputFile, strip_extension
from ..models.processing_result import PipelineResult
from ..models.workbook_analysis import AnalysisSession, WorkbookAnalysis
from .archiver import build_archive, package_archive
from .combiner import ProgressCallback, combine_sheets
from .renderer import render_worksheets
from .validator import validate_file, validate_files

"""Pipeline orchestration.

Runs the stages strictly in sequence, each consuming the complete output of
the previous one:

- combine: Validator -> Analyzer -> Combiner -> WorkbookEncoder
- split:   Validator -> Analyzer -> SheetRenderer -> Archiver

Any stage failure is fatal to the invocation; no partial output is returned.
"""

__all__ = [
    "DEFAULT_COMBINED_BASE_NAME",
    "combined_base_name",
    "combine_analyses",
    "combine_files",
    "split_workbook",
]

logger = logging.getLogger(__name__)

DEFAULT_COMBINED_BASE_NAME = "combined"


def combined_base_name(analyses: Sequence[WorkbookAnalysis]) -> str:
    """First analysed file's base name, or "combined" when there is none."""
    if not analyses:
        return DEFAULT_COMBINED_BASE_NAME
    return strip_extension(analyses[0].file_name)


def _result(mode: str, files: int, sheets: int, name: str, size: int, start: datetime) -> PipelineResult:
    end = datetime.now(UTC)
    return PipelineResult(
        mode=mode,
        files=files,
        sheets=sheets,
        output_name=name,
        output_bytes=size,
        start_time=start,
        end_time=end,
        elapsed_seconds=(end - start).total_seconds(),
    )


def combine_analyses(
    analyses: Sequence[WorkbookAnalysis],
    *,
    base_file_name: str | None = None,
    on_progress: ProgressCallback | None = None,
) -> EncodedWorkbook:
    """Combiner + encoder over already analysed workbooks."""
    combined = combine_sheets(analyses, on_progress)
    return encode_workbook(combined, base_file_name or combined_base_name(analyses))


def combine_files(
    files: Sequence[InputFile],
    *,
    session: AnalysisSession | None = None,
    config: PipelineConfig | None = None,
    base_file_name: str | None = None,
    on_progress: ProgressCallback | None = None,
) -> tuple[EncodedWorkbook, PipelineResult]:
    """Validate, analyze and merge ``files`` into one xlsx workbook.

    Every analysis held by ``session`` (including earlier batches) is
    combined, in session order.
    """
    start = datetime.now(UTC)
    config = config or PipelineConfig()
    session = session if session is not None else AnalysisSession()

    logger.info(f"stage=validate files={len(files)}")
    validate_files(files, max_size_bytes=config.max_file_size_bytes)

    logger.info("stage=analyze")
    analyze_workbooks(files, session)

    logger.info("stage=combine")
    analyses = session.analyses
    encoded = combine_analyses(analyses, base_file_name=base_file_name, on_progress=on_progress)

    result = _result("combine", len(analyses), encoded.sheet_count, encoded.file_name, encoded.size, start)
    return encoded, result


def split_workbook(
    file: InputFile,
    sheet_names: Sequence[str] | None = None,
    *,
    session: AnalysisSession | None = None,
    config: PipelineConfig | None = None,
    on_progress: ProgressCallback | None = None,
    max_workers: int | None = None,
) -> tuple[DownloadArtifact, PipelineResult]:
    """Render the selected worksheets of ``file`` to PDFs packaged in one zip."""
    start = datetime.now(UTC)
    config = config or PipelineConfig()
    session = session if session is not None else AnalysisSession()

    logger.info(f"stage=validate file={file.name}")
    validate_file(file, max_size_bytes=config.max_file_size_bytes)

    logger.info("stage=analyze")
    analysis = analyze_workbook(file, session)
    session.extend([analysis])

    logger.info("stage=render")
    documents = render_worksheets(
        analysis, sheet_names, on_progress, config.render, max_workers=max_workers
    )

    logger.info("stage=archive")
    archive = build_archive(documents)
    artifact = package_archive(archive, file.name, compression=config.archive.compression)

    result = _result("split", 1, len(documents), artifact.file_name, artifact.size, start)
    return artifact, result
