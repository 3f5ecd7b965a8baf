"""
Tests for RecordingsAPIClient (HTTP layer mocked)
"""
import base64
from datetime import datetime
from unittest.mock import MagicMock

import pytest
import requests

from src.Modules.CallRecordings_module.recording_api_client import RecordingsAPIClient
from src.Modules.CallRecordings_module.recording_models import CallLogRecord

from conftest import make_recording


def _response(status_code=200, body=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.content = b"{}" if body is not None else b""
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def client():
    api = RecordingsAPIClient("https://crm.example.com/")
    api.session = MagicMock()
    return api


class TestAdminTasks:

    def test_get_call_logs_with_recordings(self, client):
        client.session.post.return_value = _response(body={
            'status': 'success',
            'data': [
                {'id': 7, 'phonenumber': '+91 98123 45678', 'customerid': '919812345678',
                 'starttime': '2024-01-15 14:30:00', 'recordingurl': None},
                'garbage',
            ],
        })

        response = client.get_call_logs_with_recordings("42", limit=200)

        assert response.success
        assert response.data == [CallLogRecord(
            id="7",
            phone_number="+91 98123 45678",
            customer_id="919812345678",
            start_time=datetime(2024, 1, 15, 14, 30),
            recording_url="",
        )]
        args, kwargs = client.session.post.call_args
        assert args[0] == "https://crm.example.com/admin_api.php"
        assert kwargs['params'] == {'task': 'get_call_logs_with_recordings'}
        assert kwargs['json'] == {'user_id': 42, 'limit': 200, 'offset': 0}

    def test_error_status_in_body_is_failure(self, client):
        client.session.post.return_value = _response(body={'status': 'error', 'message': 'Unknown user'})

        response = client.get_call_logs_with_recordings("42")

        assert not response.success
        assert response.error == "Unknown user"

    def test_network_error_is_wrapped(self, client):
        client.session.post.side_effect = requests.exceptions.ConnectionError("refused")

        response = client.get_call_logs("42")

        assert not response.success
        assert "refused" in response.error

    def test_http_error_uses_server_message(self, client):
        client.session.post.return_value = _response(500, body={'message': 'db down'})

        response = client.sync_call_log({'callid': 'CALL_1_98'})

        assert not response.success
        assert response.status_code == 500
        assert response.error == "db down"

    def test_sync_call_log_uses_short_timeout(self, client):
        client.session.post.return_value = _response(body={'status': 'success', 'data': None})

        assert client.sync_call_log({'callid': 'CALL_1_98'}).success
        assert client.session.post.call_args.kwargs['timeout'] == 10

    def test_get_call_logs_non_list_data(self, client):
        client.session.post.return_value = _response(body={'status': 'success', 'data': None})
        assert client.get_call_logs("42").data == []


class TestUpload:

    def test_payload_contents(self, client, tmp_path):
        path = tmp_path / "919812345678~_20240115143022_incoming.m4a"
        path.write_bytes(b"audio-bytes")
        recording = make_recording(path.name, file_path=str(path), size_bytes=11)

        payload = client.build_upload_payload(recording, "42", call_log_id="7")

        assert base64.b64decode(payload['file_data']) == b"audio-bytes"
        assert payload['file_identifier'] == recording.identity_key
        assert payload['call_log_id'] == "7"
        assert payload['user_id'] == 42
        assert payload['timestamp'] == "2024-01-15 14:30:22"
        assert payload['call_type'] == "Incoming"

    def test_upload_success(self, client, tmp_path):
        path = tmp_path / "a.m4a"
        path.write_bytes(b"x")
        client.session.post.return_value = _response(body={
            'success': True, 'matched': True, 'call_log_id': 9, 'file_url': 'https://x/a.m4a',
        })

        response = client.upload_recording(make_recording("a.m4a", file_path=str(path)), "42")

        assert response.success
        assert response.data == {'matched': True, 'call_log_id': '9', 'file_url': 'https://x/a.m4a'}
        assert client.session.post.call_args.args[0] == "https://crm.example.com/upload-recording.php"

    def test_upload_rejected_by_server(self, client, tmp_path):
        path = tmp_path / "a.m4a"
        path.write_bytes(b"x")
        client.session.post.return_value = _response(body={'success': False, 'message': 'Too large'})

        response = client.upload_recording(make_recording("a.m4a", file_path=str(path)), "42")

        assert not response.success
        assert response.error == "Too large"

    def test_unreadable_file_is_failure_without_request(self, client, tmp_path):
        recording = make_recording("gone.m4a", file_path=str(tmp_path / "gone.m4a"))

        response = client.upload_recording(recording, "42")

        assert not response.success
        client.session.post.assert_not_called()
