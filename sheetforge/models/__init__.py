"""Domain models for the workbook combine / split pipeline."""

from .artifacts import Archive, ArchiveEntry, DownloadArtifact, EncodedWorkbook, GeneratedDocument
from .combined_workbook import SHEET_NAME_LIMIT, CombinedSheet, CombinedWorkbook
from .input_file import InputFile, strip_extension
from .processing_result import PipelineResult, format_file_size
from .workbook_analysis import AnalysisSession, AnalysisStatus, WorkbookAnalysis, WorksheetMeta

__all__ = [
    # Inputs
    "InputFile",
    "strip_extension",
    # Analysis
    "AnalysisSession",
    "AnalysisStatus",
    "WorkbookAnalysis",
    "WorksheetMeta",
    # Combine
    "SHEET_NAME_LIMIT",
    "CombinedSheet",
    "CombinedWorkbook",
    # Outputs
    "Archive",
    "ArchiveEntry",
    "DownloadArtifact",
    "EncodedWorkbook",
    "GeneratedDocument",
    "PipelineResult",
    "format_file_size",
]
