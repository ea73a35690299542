from typing import Generic, TypeVar, Optional, Any, Dict, Union
from http import HTTPStatus

from utils.errors import SpreadsheetError

T = TypeVar('T')  # Generic type variable

class Result(Generic[T]):
    """
    A generic result class that represents the outcome of a spreadsheet operation.

    Pipeline functions raise SpreadsheetError subclasses; the service layer
    catches them and hands the API layer a Result instead, so every route
    builds its response the same way.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (only present when success is True)
        error (Optional[str]): Error message (only present when success is False)
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None
    ):
        self.success = success
        self.data = data
        self.error = error

        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        elif isinstance(status_code, HTTPStatus):
            self.status_code = status_code
        else:
            self.status_code = HTTPStatus(status_code)

    @classmethod
    def ok(cls, data: T, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.OK) -> "Result[T]":
        """
        Create a successful Result with the provided data.

        Args:
            data (T): The data to be wrapped in the Result
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 200 OK.

        Returns:
            Result[T]: A successful Result containing the provided data
        """
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.BAD_REQUEST) -> "Result[T]":
        """
        Create a failed Result with the provided error message.

        Args:
            error (str): The error message describing the failure
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 400 BAD_REQUEST.

        Returns:
            Result[T]: A failed Result containing the error message
        """
        return cls(success=False, error=error, status_code=status_code)

    @classmethod
    def from_error(cls, exc: SpreadsheetError) -> "Result[T]":
        """
        Create a failed Result from a pipeline error, keeping its status code.

        Args:
            exc (SpreadsheetError): The error raised by a reader, analyzer, engine or writer

        Returns:
            Result[T]: A failed Result carrying the error message and status
        """
        return cls(success=False, error=exc.message, status_code=exc.status_code)

    @classmethod
    def not_found(cls, error: str = "Resource not found") -> "Result[T]":
        """Create a failed Result with NOT_FOUND status code."""
        return cls(success=False, error=error, status_code=HTTPStatus.NOT_FOUND)

    @classmethod
    def invalid_input(cls, error: str = "Invalid input data") -> "Result[T]":
        """Create a failed Result with BAD_REQUEST status code."""
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST)

    @classmethod
    def server_error(cls, error: str = "Internal server error") -> "Result[T]":
        """Create a failed Result with INTERNAL_SERVER_ERROR status code."""
        return cls(success=False, error=error, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert Result to a dictionary suitable for API responses.

        Returns:
            Dict[str, Any]: Dictionary containing status, status_code, data/error
        """
        response = {
            "success": self.success,
            "status_code": self.status_code.value,
            "status": self.status_code.phrase
        }

        if self.is_success():
            response["data"] = self.data
        else:
            response["error"] = self.error

        return response
