from typing import Any, Dict

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from utils.errors import SpreadsheetError
from utils.result import Result


def result_response(result: Result) -> JSONResponse:
    """Turn a failed Result into a JSON error response with its status code."""
    return JSONResponse(status_code=result.status_code.value, content=jsonable_encoder(result.to_dict()))


def error_response(exc: SpreadsheetError) -> JSONResponse:
    return result_response(Result.from_error(exc))


def success_body(message: str, **payload: Any) -> Dict[str, Any]:
    return {"success": True, "message": message, **payload}
