"""Upload endpoints: store spreadsheets, list and delete them."""
import os
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import APIRouter, File, UploadFile

from api.responses import error_response, success_body
from config import settings
from file_storage import delete_file, generate_file_id, generate_unique_file_name, list_files, safe_remove
from spreadsheet_reader import file_extension
from spreadsheet_service import SpreadsheetProcessor
from utils.errors import SpreadsheetError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Upload"])

CHUNK_SIZE = 1024 * 1024


def validate_upload(upload: UploadFile) -> None:
    """
    Check an upload's name before anything is written.

    Raises:
        ValidationError: Missing name or an extension outside ALLOWED_EXTENSIONS
    """
    if not upload.filename:
        raise ValidationError("Uploaded file has no name")
    if file_extension(upload.filename) not in settings.ALLOWED_EXTENSIONS:
        raise ValidationError(f"File type not allowed: {upload.filename}")
    if upload.content_type and upload.content_type not in settings.ALLOWED_TYPES:
        logger.warning(
            f"Unexpected MIME type for {upload.filename}",
            extra={"content_type": upload.content_type},
        )


async def store_upload(upload: UploadFile, upload_dir: str) -> Tuple[str, str, int]:
    """
    Stream an upload to disk under a generated name.

    Returns:
        (stored name, path, size in bytes)

    Raises:
        ValidationError: The file is larger than MAX_FILE_SIZE; the partial file is removed
    """
    stored_name = generate_unique_file_name(upload.filename)
    path = os.path.join(upload_dir, stored_name)
    size = 0
    with open(path, "wb") as out:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > settings.MAX_FILE_SIZE:
                out.close()
                safe_remove(path)
                raise ValidationError(f"File too large: {upload.filename}")
            out.write(chunk)
    return stored_name, path, size


@router.post("/files")
async def upload_files(
    planilhas: Optional[List[UploadFile]] = File(default=None),
    planilhas_brackets: Optional[List[UploadFile]] = File(default=None, alias="planilhas[]"),
):
    """
    Upload one or more spreadsheets and profile each of them.

    Files are read from the "planilhas" field, or its bracketed form "planilhas[]".

    Count, type and size are checked for the whole batch first; any violation
    rejects the request and removes what was already written. After that,
    each file is processed on its own: a file that cannot be read is deleted
    and reported in its own slot.

    Returns:
        dict: success, message, files (per-file profile or error) and summary counts
    """
    uploads = (planilhas or []) + (planilhas_brackets or [])
    if not uploads:
        return error_response(ValidationError("No file was uploaded"))
    if len(uploads) > settings.MAX_FILES:
        return error_response(ValidationError(f"At most {settings.MAX_FILES} files are allowed"))

    logger.info(f"Received {len(uploads)} file(s) for processing")

    stored: List[Tuple[UploadFile, str, str, int]] = []
    try:
        for upload in uploads:
            validate_upload(upload)
        upload_dir = settings.upload_path
        for upload in uploads:
            stored_name, path, size = await store_upload(upload, upload_dir)
            stored.append((upload, stored_name, path, size))
    except SpreadsheetError as e:
        for _, _, path, _ in stored:
            safe_remove(path)
        logger.warning(f"Upload rejected: {e.message}")
        return error_response(e)

    processed_files = []
    for upload, stored_name, path, size in stored:
        logger.info(f"Processing file: {upload.filename}")
        result = SpreadsheetProcessor.process_upload(path, upload.filename)
        if result.is_failure():
            # Failed uploads are not kept
            safe_remove(path)
            processed_files.append({"originalName": upload.filename, "error": result.error})
            continue

        processed_files.append({
            "id": generate_file_id(),
            "originalName": upload.filename,
            "fileName": stored_name,
            "size": size,
            "type": upload.content_type,
            "uploadDate": datetime.now().isoformat(),
            **result.data,
        })

    success_count = sum(1 for f in processed_files if "error" not in f)
    error_count = len(processed_files) - success_count
    message = f"{success_count} file(s) processed successfully"
    if error_count:
        message += f", {error_count} with error(s)"

    return success_body(
        message,
        files=processed_files,
        summary={"total": len(uploads), "success": success_count, "errors": error_count},
    )


@router.get("/files")
def get_uploaded_files():
    """List stored uploads with size and upload date."""
    files = [
        {
            "filename": entry["filename"],
            "originalName": entry["filename"],
            "size": entry["size"],
            "uploadDate": entry["createDate"],
        }
        for entry in list_files(settings.upload_path)
    ]
    return {"success": True, "files": files}


@router.delete("/files/{filename}")
def delete_uploaded_file(filename: str):
    """Remove one stored upload; 404 when it does not exist."""
    try:
        delete_file(settings.upload_path, filename)
    except SpreadsheetError as e:
        return error_response(e)
    return success_body("File removed successfully")
