from http import HTTPStatus


class SpreadsheetError(Exception):
    """
    Base class for every error raised by the spreadsheet pipeline.

    Each subclass carries the HTTP status it is reported with, so the
    service layer can turn any of them into a failed Result without a
    lookup table.
    """
    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedFormat(SpreadsheetError):
    """File extension is not one of the readable formats, or the parser rejected it."""
    status_code = HTTPStatus.BAD_REQUEST


class EmptyTable(SpreadsheetError):
    """Sheet has no header row or no data rows after it."""
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class FileNotFound(SpreadsheetError):
    """Stored upload or export is missing on disk."""
    status_code = HTTPStatus.NOT_FOUND


class EmptyInput(SpreadsheetError):
    """Export was asked to write zero rows."""
    status_code = HTTPStatus.BAD_REQUEST


class ValidationError(SpreadsheetError):
    """Bad request shape, or a file count/size/type violation."""
    status_code = HTTPStatus.BAD_REQUEST


class InternalError(SpreadsheetError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
