"""
Flat-directory storage for uploaded spreadsheets and export artifacts.

There is no index: the directory listing is the source of truth.
"""
import os
import re
import time
import uuid
import secrets
import string
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from utils.errors import FileNotFound, ValidationError

logger = logging.getLogger(__name__)

_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


def generate_file_id() -> str:
    return str(uuid.uuid4())


def generate_unique_file_name(original_name: str) -> str:
    """
    Build a stored name that cannot collide with, or be steered by, the upload name.

    Format: <cleaned base>_<epoch ms>_<6 random chars><ext>

    Args:
        original_name: File name supplied by the client

    Returns:
        A bare file name safe to join with the upload directory
    """
    base, extension = os.path.splitext(os.path.basename(original_name or ""))
    clean_base = re.sub(r"[^a-zA-Z0-9_-]", "_", base) or "file"
    clean_extension = re.sub(r"[^a-zA-Z0-9.]", "", extension.lower())
    random_part = "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(6))
    return f"{clean_base}_{int(time.time() * 1000)}_{random_part}{clean_extension}"


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value, i = float(size), 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def resolve_path(directory: str, file_name: str) -> str:
    """
    Join a client-supplied file name to a storage directory.

    Raises:
        ValidationError: file_name is not a bare file name (e.g. contains a path separator or "..")
    """
    if not file_name or file_name in (".", "..") or os.path.basename(file_name) != file_name or "\\" in file_name:
        raise ValidationError(f"Invalid file name: {file_name}")
    return os.path.join(directory, file_name)


def file_info(path: str) -> Dict[str, Any]:
    stats = os.stat(path)
    return {
        "filename": os.path.basename(path),
        "size": stats.st_size,
        "sizeFormatted": format_file_size(stats.st_size),
        "createDate": datetime.fromtimestamp(stats.st_ctime).isoformat(),
        "modifiedDate": datetime.fromtimestamp(stats.st_mtime).isoformat(),
    }


def list_files(directory: str, extensions: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
    """
    Describe the files in a storage directory, newest first.

    Args:
        directory: Directory to list
        extensions: Lower-case extensions to keep (e.g. [".xlsx", ".csv"]), all files when None
    """
    if not os.path.isdir(directory):
        return []

    entries = []
    for name in os.listdir(directory):
        path = os.path.join(directory, name)
        if not os.path.isfile(path):
            continue
        if extensions is not None and os.path.splitext(name)[1].lower() not in extensions:
            continue
        entries.append(file_info(path))

    entries.sort(key=lambda entry: entry["createDate"], reverse=True)
    return entries


def delete_file(directory: str, file_name: str) -> None:
    """
    Remove one stored file.

    Raises:
        ValidationError: file_name is not a bare file name
        FileNotFound: No such file in directory
    """
    path = resolve_path(directory, file_name)
    if not os.path.isfile(path):
        raise FileNotFound(f"File not found: {file_name}")
    os.remove(path)
    logger.info(f"File removed: {file_name}", extra={"directory": directory})


def safe_remove(path: str) -> bool:
    """Remove a file if it exists, logging instead of raising on failure."""
    try:
        if os.path.isfile(path):
            os.remove(path)
            logger.info(f"File removed: {os.path.basename(path)}")
            return True
    except OSError as e:
        logger.error(f"Failed to remove {path}: {str(e)}")
    return False
