import os
import time
import uuid
import logging
from typing import Any, Callable, Dict, List, TypeVar

from combine_engine import PreviewResult, SpreadsheetSource, combine, output_columns, preview
from config import settings
from export_writer import ExportArtifact, export_many, write
from file_storage import resolve_path
from schemas import CombineRequest, PreviewRequest
from selection import SelectionMap, StoredFile
from spreadsheet_reader import file_extension, read_sample, read_table
from structure_analyzer import analyze, summarize
from utils.errors import FileNotFound, InternalError, SpreadsheetError, ValidationError
from utils.result import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.get('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        extra = {"request_id": self.request_id, "duration": duration, **self.extra}
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra=extra,
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(f"Completed {self.operation_name} in {duration:.2f}s", extra=extra)
        # The timeout is advertised to clients but never enforced
        if duration > settings.PROCESSING_TIMEOUT:
            logger.warning(
                f"{self.operation_name} exceeded the {settings.PROCESSING_TIMEOUT}s processing timeout",
                extra=extra
            )


class SpreadsheetProcessor:
    """
    Service layer between the HTTP routes and the spreadsheet pipeline.

    Every public method returns a Result: pipeline errors become failed
    Results with their own status code, anything unexpected becomes a 500.
    """

    @staticmethod
    def _run(operation: str, fn: Callable[[], T], **log_context) -> Result[T]:
        log_context.setdefault("request_id", str(uuid.uuid4())[:8])
        try:
            with LogContext(operation, **log_context):
                return Result.ok(fn())
        except SpreadsheetError as e:
            logger.warning(f"{operation} failed: {e.message}", extra=log_context)
            return Result.from_error(e)
        except Exception as e:
            logger.exception(f"Unexpected error during {operation}", extra={**log_context, "error": str(e)})
            return Result.from_error(InternalError(f"Error during {operation}: {str(e)}"))

    @staticmethod
    def _stored_path(file_name: str) -> str:
        return resolve_path(settings.upload_path, file_name)

    @staticmethod
    def _sources(spreadsheets: List[StoredFile]) -> List[SpreadsheetSource]:
        return [
            SpreadsheetSource(
                file_name=stored.file_name,
                original_name=stored.original_name,
                path=SpreadsheetProcessor._stored_path(stored.file_name),
            )
            for stored in spreadsheets
        ]

    @staticmethod
    def process_upload(file_path: str, original_name: str) -> Result[Dict[str, Any]]:
        """
        Read a freshly stored upload in full and profile it.

        Args:
            file_path: Where the upload was written
            original_name: Name the client sent

        Returns:
            Result with totalLinhas, totalColunas, colunas, amostraDados, tipos and estatisticas
        """
        return SpreadsheetProcessor._run(
            "upload processing",
            lambda: summarize(read_table(file_path, original_name)),
            file_path=file_path,
            original_name=original_name,
        )

    @staticmethod
    def analyze_structure(file_name: str, original_name: str) -> Result[Dict[str, Any]]:
        """
        Infer the column structure of a stored file from its first rows.

        Returns:
            Result with colunas (column descriptors), amostraDados and arquivo
        """
        def _analyze() -> Dict[str, Any]:
            path = SpreadsheetProcessor._stored_path(file_name)
            if not os.path.isfile(path):
                raise FileNotFound("File not found")
            sample = read_sample(path, original_name, settings.SAMPLE_ROWS)
            columns = analyze(sample)
            logger.info(f"Columns found in {original_name}: {', '.join(c.name for c in columns)}")
            return {
                "colunas": [column.model_dump(by_alias=True) for column in columns],
                "amostraDados": sample.to_dict(orient="records"),
                "arquivo": {"nome": original_name, "extensao": file_extension(original_name)},
            }

        return SpreadsheetProcessor._run(
            "structure analysis", _analyze, file_name=file_name, original_name=original_name
        )

    @staticmethod
    def analyze_many(files: List[StoredFile]) -> List[Dict[str, Any]]:
        """Analyze each file independently; a failure only fills that file's slot."""
        analyses = []
        for stored in files:
            entry = {"fileName": stored.file_name, "originalName": stored.original_name}
            result = SpreadsheetProcessor.analyze_structure(stored.file_name, stored.original_name)
            if result.is_success():
                entry.update(result.data)
            else:
                entry["error"] = result.error
            analyses.append(entry)
        return analyses

    @staticmethod
    def preview(request: PreviewRequest) -> Result[PreviewResult]:
        def _preview() -> PreviewResult:
            return preview(
                SpreadsheetProcessor._sources(request.spreadsheets),
                SelectionMap(request.selection),
                request.limit,
            )

        return SpreadsheetProcessor._run(
            "preview generation", _preview,
            spreadsheets=len(request.spreadsheets), limit=request.limit,
        )

    @staticmethod
    def combine_and_export(request: CombineRequest, default_name: str) -> Result[Dict[str, Any]]:
        """
        Combine the selected columns and write the export file(s).

        Args:
            request: Spreadsheets, selection, final name and settings
            default_name: Base name used when the request has none

        Returns:
            Result with arquivo (first artifact), arquivos (multi-format only) and estatisticas
        """
        def _combine() -> Dict[str, Any]:
            if not request.spreadsheets:
                raise ValidationError("No spreadsheet was specified for combination")
            if not request.selection:
                raise ValidationError("No column was selected for combination")

            selection = SelectionMap(request.selection)
            combine_settings = request.settings
            rows = combine(
                SpreadsheetProcessor._sources(request.spreadsheets),
                selection,
                combine_settings.combine_options(),
            )

            base_name = request.final_name or default_name
            response: Dict[str, Any] = {}
            if combine_settings.formats:
                exported = export_many(
                    rows, base_name, combine_settings.formats,
                    combine_settings.csv_options(), combine_settings.sheet_name,
                )
                artifacts = [item for item in exported if isinstance(item, ExportArtifact)]
                if not artifacts:
                    errors = "; ".join(item["error"] for item in exported if isinstance(item, dict))
                    raise ValidationError(errors or "No supported export format requested")
                response["arquivo"] = artifacts[0].model_dump(by_alias=True)
                response["arquivos"] = [
                    item.model_dump(by_alias=True) if isinstance(item, ExportArtifact) else item
                    for item in exported
                ]
            else:
                artifact = write(
                    rows, base_name, combine_settings.format,
                    combine_settings.csv_options(), combine_settings.sheet_name,
                )
                response["arquivo"] = artifact.model_dump(by_alias=True)

            response["estatisticas"] = {
                "totalLinhas": len(rows),
                "totalColunas": len(output_columns(rows)),
                "planilhasOriginais": len(request.spreadsheets),
                "colunasCombinadas": selection.total_selected(),
            }
            return response

        return SpreadsheetProcessor._run(
            "combination", _combine,
            spreadsheets=len(request.spreadsheets), final_name=request.final_name,
        )
