"""
Python client for the Spreadsheet Combiner API.

Keeps no global state: the files and column choices of a user live in a
CombineSession that the caller passes in.
"""
import os
import time
import logging
import mimetypes
from typing import Any, Callable, Dict, List, Optional

import requests

from selection import CombineSession
from structure_analyzer import ColumnDescriptor

logger = logging.getLogger(__name__)


class SpreadsheetClientError(Exception):
    """Raised when the API answers with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SpreadsheetClient:
    """
    Thin wrapper over the HTTP API.

    Args:
        base_url: Server root, e.g. http://localhost:3000
        max_attempts: Upload attempts before giving up
        backoff_seconds: Delay before the second attempt, doubled after each failure
        timeout: Per-request timeout in seconds
        sleep: Delay function, replaceable in tests
    """

    def __init__(self, base_url: str, max_attempts: int = 3, backoff_seconds: float = 1.0,
                 timeout: float = 120, sleep: Callable[[float], None] = time.sleep):
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.timeout = timeout
        self._sleep = sleep

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @staticmethod
    def _handle(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code >= 400:
            message = body.get("error") or body.get("message") or response.reason or "Request failed"
            raise SpreadsheetClientError(message, status_code=response.status_code)
        return body

    def _upload_once(self, paths: List[str]) -> Dict[str, Any]:
        handles = []
        try:
            files = []
            for path in paths:
                handle = open(path, "rb")
                handles.append(handle)
                content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
                files.append(("planilhas", (os.path.basename(path), handle, content_type)))
            response = requests.post(self._url("/api/upload/files"), files=files, timeout=self.timeout)
        finally:
            for handle in handles:
                handle.close()
        return self._handle(response)

    def upload_files(self, paths: List[str], session: Optional[CombineSession] = None) -> Dict[str, Any]:
        """
        Upload spreadsheets, retrying the whole upload with exponential backoff.

        Every attempt creates a new set of stored files on the server; files
        from failed attempts are not cleaned up here.

        Args:
            paths: Local files to send
            session: When given, successfully processed files are added to it

        Returns:
            The server's upload response

        Raises:
            SpreadsheetClientError / requests.RequestException: the last error once attempts run out
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                body = self._upload_once(paths)
                break
            except (SpreadsheetClientError, requests.RequestException) as e:
                if attempt >= self.max_attempts:
                    raise
                delay = self.backoff_seconds * 2 ** (attempt - 1)
                logger.warning(f"Upload attempt {attempt} failed ({str(e)}), retrying in {delay:.1f}s")
                self._sleep(delay)

        if session is not None:
            for entry in body.get("files", []):
                if "error" not in entry:
                    session.add_file(entry["fileName"], entry["originalName"])
        return body

    def analyze(self, session: CombineSession) -> List[Dict[str, Any]]:
        """Analyze every file of the session and store the column structures in it."""
        response = requests.post(
            self._url("/api/planilhas/analisar"),
            json={"files": session.files_payload()},
            timeout=self.timeout,
        )
        analyses = self._handle(response).get("analises", [])
        for entry in analyses:
            if "error" not in entry:
                columns = [ColumnDescriptor.model_validate(c) for c in entry.get("colunas", [])]
                session.set_analysis(entry["fileName"], columns)
        return analyses

    def preview(self, session: CombineSession, limit: int = 10) -> Dict[str, Any]:
        response = requests.post(
            self._url("/api/planilhas/preview"),
            json=session.preview_payload(limit),
            timeout=self.timeout,
        )
        return self._handle(response)["preview"]

    def combine(self, session: CombineSession, final_name: Optional[str] = None,
                configuration: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = requests.post(
            self._url("/api/planilhas/combinar"),
            json=session.combine_payload(final_name, configuration),
            timeout=self.timeout,
        )
        return self._handle(response)

    def list_exports(self) -> List[Dict[str, Any]]:
        response = requests.get(self._url("/api/planilhas/exports"), timeout=self.timeout)
        return self._handle(response).get("exports", [])

    def delete_export(self, filename: str) -> None:
        self._handle(requests.delete(self._url(f"/api/planilhas/exports/{filename}"), timeout=self.timeout))

    def delete_upload(self, filename: str, session: Optional[CombineSession] = None) -> None:
        self._handle(requests.delete(self._url(f"/api/upload/files/{filename}"), timeout=self.timeout))
        if session is not None:
            session.remove_file(filename)
