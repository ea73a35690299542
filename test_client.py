from unittest.mock import MagicMock, patch

import pytest
import requests

from client import SpreadsheetClient, SpreadsheetClientError
from selection import CombineSession


def fake_response(status_code=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status_code
    response.reason = reason
    response.json.return_value = body if body is not None else {}
    return response


UPLOAD_BODY = {
    "success": True,
    "files": [
        {"fileName": "a_1_x.csv", "originalName": "a.csv", "totalLinhas": 2},
        {"fileName": "b_2_y.xlsx", "originalName": "b.xlsx", "error": "The file has no data"},
    ],
}


@pytest.fixture
def local_file(write_text_file):
    return write_text_file("a.csv", "id,name\n1,Alice\n")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def api(sleeps):
    return SpreadsheetClient("http://localhost:3000/", sleep=sleeps.append)


class TestUpload:
    """
    Tests for uploads with retry.
    """

    def test_successful_upload_updates_session(self, api, local_file, sleeps):
        session = CombineSession()
        with patch("client.requests.post", return_value=fake_response(body=UPLOAD_BODY)) as mock_post:
            body = api.upload_files([local_file], session)

        assert body == UPLOAD_BODY
        assert session.files_payload() == [{"fileName": "a_1_x.csv", "originalName": "a.csv"}]
        assert sleeps == []
        url = mock_post.call_args.args[0]
        assert url == "http://localhost:3000/api/upload/files"
        [(field, (name, _, content_type))] = mock_post.call_args.kwargs["files"]
        assert (field, name, content_type) == ("planilhas", "a.csv", "text/csv")

    def test_retries_with_exponential_backoff(self, api, local_file, sleeps):
        responses = [
            requests.ConnectionError("refused"),
            fake_response(500, {"error": "Internal server error"}),
            fake_response(body=UPLOAD_BODY),
        ]
        with patch("client.requests.post", side_effect=responses) as mock_post:
            api.upload_files([local_file])

        assert mock_post.call_count == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_last_attempt(self, api, local_file, sleeps):
        with patch("client.requests.post", return_value=fake_response(400, {"error": "Too many files"})):
            with pytest.raises(SpreadsheetClientError) as excinfo:
                api.upload_files([local_file])

        assert excinfo.value.message == "Too many files"
        assert excinfo.value.status_code == 400
        assert sleeps == [1.0, 2.0]


class TestWorkflow:
    """
    Tests for the analyze, preview and combine calls.
    """

    def test_analyze_stores_column_structures(self, api):
        session = CombineSession()
        session.add_file("a_1_x.csv", "a.csv")
        body = {"success": True, "analises": [{
            "fileName": "a_1_x.csv",
            "originalName": "a.csv",
            "colunas": [{"indice": 0, "nome": "id", "nomeOriginal": "id", "tipo": "number", "exemplos": ["1"]}],
        }]}

        with patch("client.requests.post", return_value=fake_response(body=body)) as mock_post:
            api.analyze(session)

        assert mock_post.call_args.kwargs["json"] == {"files": [{"fileName": "a_1_x.csv", "originalName": "a.csv"}]}
        assert session.analyses["a_1_x.csv"][0].name == "id"
        assert session.choose("a_1_x.csv", "id").index == 0

    def test_preview_returns_preview_block(self, api):
        session = CombineSession()
        preview = {"dados": [], "colunas": [], "totalEstimado": 0, "planilhasProcessadas": 0}
        with patch("client.requests.post", return_value=fake_response(body={"success": True, "preview": preview})):
            assert api.preview(session, limit=5) == preview

    def test_combine_sends_session_state(self, api):
        session = CombineSession()
        session.add_file("a_1_x.csv", "a.csv")
        session.choose("a_1_x.csv", "name")
        with patch("client.requests.post", return_value=fake_response(body={"success": True})) as mock_post:
            api.combine(session, "final", {"formato": "csv"})

        payload = mock_post.call_args.kwargs["json"]
        assert payload["nomeArquivoFinal"] == "final"
        assert payload["colunasEscolhidas"] == {"a_1_x.csv": [{"indice": 0, "nome": "name"}]}

    def test_error_status_raises(self, api):
        with patch("client.requests.post", return_value=fake_response(422, {"message": "Bad"}, "Unprocessable")):
            with pytest.raises(SpreadsheetClientError, match="Bad"):
                api.combine(CombineSession())

    def test_non_json_error_uses_reason(self, api):
        response = fake_response(502, reason="Bad Gateway")
        response.json.side_effect = ValueError("no json")
        with patch("client.requests.get", return_value=response):
            with pytest.raises(SpreadsheetClientError, match="Bad Gateway"):
                api.list_exports()

    def test_delete_upload_removes_file_from_session(self, api):
        session = CombineSession()
        session.add_file("a_1_x.csv", "a.csv")
        with patch("client.requests.delete", return_value=fake_response(body={"success": True})) as mock_delete:
            api.delete_upload("a_1_x.csv", session)

        assert mock_delete.call_args.args[0] == "http://localhost:3000/api/upload/files/a_1_x.csv"
        assert session.files == []
