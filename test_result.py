from http import HTTPStatus

import pytest

from utils.errors import EmptyTable, FileNotFound, UnsupportedFormat
from utils.result import Result


class TestResult:
    """
    Tests for the Result wrapper returned by the service layer.
    """

    def test_ok(self):
        result = Result.ok({"rows": 2})
        assert result.is_success()
        assert result.status_code == HTTPStatus.OK
        assert result.to_dict() == {"success": True, "status_code": 200, "status": "OK", "data": {"rows": 2}}

    def test_fail_defaults_to_bad_request(self):
        result = Result.fail("bad")
        assert result.is_failure()
        assert result.to_dict() == {"success": False, "status_code": 400, "status": "Bad Request", "error": "bad"}

    def test_integer_status_is_converted(self):
        assert Result.ok(1, status_code=201).status_code is HTTPStatus.CREATED

    @pytest.mark.parametrize(
        "exc, expected",
        [
            (UnsupportedFormat("nope"), HTTPStatus.BAD_REQUEST),
            (EmptyTable("empty"), HTTPStatus.UNPROCESSABLE_ENTITY),
            (FileNotFound("gone"), HTTPStatus.NOT_FOUND),
        ],
        ids=["unsupported", "empty-table", "not-found"]
    )
    def test_from_error_keeps_status(self, exc, expected):
        result = Result.from_error(exc)
        assert result.status_code == expected
        assert result.error == exc.message

    def test_shortcut_constructors(self):
        assert Result.not_found().status_code == HTTPStatus.NOT_FOUND
        assert Result.invalid_input().status_code == HTTPStatus.BAD_REQUEST
        assert Result.server_error().status_code == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_failure_exposes_only_error(self):
        result = Result.not_found("missing")
        assert result.is_failure()
        assert result.data is None
        assert "data" not in result.to_dict()
