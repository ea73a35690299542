"""Spreadsheet endpoints: analysis, preview, combination and export management."""
import time
import logging

from fastapi import APIRouter

from api.responses import error_response, result_response, success_body
from config import settings
from file_storage import delete_file, list_files
from schemas import AnalyzeRequest, CombineRequest, PreviewRequest
from spreadsheet_service import SpreadsheetProcessor
from utils.errors import SpreadsheetError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/planilhas", tags=["Spreadsheets"])

EXPORT_EXTENSIONS = (".xlsx", ".csv")


@router.post("/analisar")
def analyze_spreadsheets(request: AnalyzeRequest):
    """
    Return the column structure of already uploaded spreadsheets.

    Each file is analyzed from a bounded row sample. A missing or unreadable
    file gets an error in its own entry and does not stop the others.
    """
    if not request.files:
        return error_response(ValidationError("No file was specified for analysis"))

    logger.info(f"Analyzing {len(request.files)} spreadsheet(s)")
    analyses = SpreadsheetProcessor.analyze_many(request.files)
    return success_body("Analysis finished", analises=analyses)


@router.post("/preview")
def preview_combination(request: PreviewRequest):
    """
    Preview the combined table.

    Returns the first limiteLinha rows (always with the __origin__ column)
    and the total number of rows the full combination would produce.
    """
    logger.info("Generating combination preview")
    result = SpreadsheetProcessor.preview(request)
    if result.is_failure():
        return result_response(result)

    preview = result.data
    return success_body(
        "Preview generated successfully",
        preview={
            "dados": preview.rows,
            "colunas": preview.column_names,
            "totalEstimado": preview.total_row_count,
            "planilhasProcessadas": preview.files_processed,
        },
        info={
            "linhasExibidas": len(preview.rows),
            "totalEstimado": preview.total_row_count,
            "colunas": preview.column_names,
        },
    )


@router.post("/combinar")
def combine_spreadsheets(request: CombineRequest):
    """
    Combine the selected columns of several spreadsheets and export the result.

    The export format comes from configuracoes.formato (xlsx by default), or
    one file per entry of configuracoes.formatos.
    """
    logger.info(f"Combining columns from {len(request.spreadsheets)} spreadsheet(s)")
    default_name = f"combined_spreadsheet_{int(time.time() * 1000)}"
    result = SpreadsheetProcessor.combine_and_export(request, default_name)
    if result.is_failure():
        return result_response(result)

    logger.info(f"Combined spreadsheet created: {result.data['arquivo']['fileName']}")
    return success_body("Spreadsheets combined successfully", **result.data)


@router.get("/exports")
def get_exports():
    """List export artifacts available for download, newest first."""
    exports = [
        {
            "filename": entry["filename"],
            "size": entry["size"],
            "createDate": entry["createDate"],
            "downloadUrl": f"{settings.EXPORT_URL_PREFIX}/{entry['filename']}",
        }
        for entry in list_files(settings.export_path, EXPORT_EXTENSIONS)
    ]
    return {"success": True, "exports": exports}


@router.delete("/exports/{filename}")
def delete_export(filename: str):
    try:
        delete_file(settings.export_path, filename)
    except SpreadsheetError as e:
        return error_response(e)
    return success_body("File removed successfully")
