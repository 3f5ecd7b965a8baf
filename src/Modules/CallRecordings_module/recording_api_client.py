"""
API Client dla synchronizacji nagrań i rejestru połączeń z serwerem.
=====================================================================

Ten moduł odpowiada za komunikację HTTP z backendem PHP.
Obsługuje:
- Pobieranie rekordów call-log (kandydaci do powiązania z nagraniami)
- Pobieranie już zsynchronizowanych wpisów call-log
- Wysyłanie wpisów rejestru połączeń (sync_call_log)
- Upload nagrań (base64 + metadane + identity key jako klucz idempotencji)

Każda odpowiedź (także błąd sieci) jest opakowana w APIResponse -
metody klienta nie rzucają wyjątków.
"""

import base64
from typing import Optional, List, Dict, Any, Union

import requests
from loguru import logger

from .recording_models import RecordingFile, CallLogRecord
from .duration_resolver import format_duration


class APIResponse:
    """Wrapper dla odpowiedzi API"""

    def __init__(self, success: bool, data: Any = None, error: Optional[str] = None, status_code: Optional[int] = None):
        self.success = success
        self.data = data
        self.error = error
        self.status_code = status_code

    def __repr__(self) -> str:
        if self.success:
            return f"<APIResponse success=True status={self.status_code}>"
        return f"<APIResponse success=False error='{self.error}' status={self.status_code}>"


class RecordingsAPIClient:
    """
    Klient API dla nagrań i rejestru połączeń.

    Endpointy:
    - {base_url}{admin_endpoint}?task=<task>  (JSON: {status, data, message})
    - {base_url}{upload_endpoint}             (JSON: {success, matched, call_log_id, file_url, message})
    """

    def __init__(
        self,
        base_url: str,
        upload_endpoint: str = "/upload-recording.php",
        admin_endpoint: str = "/admin_api.php",
        timeout: int = 30
    ):
        """
        Inicjalizacja API client.

        Args:
            base_url: URL serwera (np. "https://api.example.com")
            upload_endpoint: Ścieżka endpointu uploadu nagrań
            admin_endpoint: Ścieżka admin API (zadania przez ?task=)
            timeout: Timeout requestu w sekundach (upload może być wolny)
        """
        self.base_url = base_url.rstrip('/')
        self.upload_endpoint = upload_endpoint
        self.admin_endpoint = admin_endpoint
        self.session = requests.Session()
        self.timeout = timeout

        # Domyślne headers
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        })

        logger.info(f"[Recordings API] Client initialized with base_url: {base_url}")

    def set_base_url(self, base_url: str):
        """Zmień URL serwera (ustawienie użytkownika)"""
        self.base_url = base_url.rstrip('/')
        logger.debug(f"[Recordings API] Base URL updated: {self.base_url}")

    def _post(self, url: str, payload: Dict[str, Any], params: Optional[Dict[str, str]] = None,
              timeout: Optional[int] = None) -> APIResponse:
        """Wykonaj POST i opakuj wynik; błędy sieci -> APIResponse(success=False)"""
        try:
            response = self.session.post(
                url,
                json=payload,
                params=params,
                timeout=timeout or self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"[Recordings API] Request failed: {e}")
            return APIResponse(success=False, error=str(e))

        return self._handle_response(response)

    def _handle_response(self, response: requests.Response) -> APIResponse:
        """
        Obsłuż odpowiedź HTTP.

        Args:
            response: Odpowiedź requests

        Returns:
            APIResponse object
        """
        try:
            response.raise_for_status()
            data = response.json() if response.content else None
            return APIResponse(
                success=True,
                data=data,
                status_code=response.status_code
            )
        except requests.exceptions.HTTPError as e:
            error_message = str(e)
            try:
                error_data = response.json()
                error_message = error_data.get('message') or error_data.get('detail') or error_message
            except ValueError:
                pass

            logger.error(f"[Recordings API] HTTP Error {response.status_code}: {error_message}")
            return APIResponse(
                success=False,
                error=error_message,
                status_code=response.status_code
            )
        except ValueError as e:
            logger.error(f"[Recordings API] Invalid JSON response: {e}")
            return APIResponse(
                success=False,
                error=f"Invalid JSON response: {e}",
                status_code=response.status_code
            )

    def _admin_task(self, task: str, payload: Dict[str, Any], timeout: Optional[int] = None) -> APIResponse:
        """
        Wywołaj zadanie admin API. Sukces tylko gdy serwer zwrócił status == "success".

        Returns:
            APIResponse z data = pole "data" odpowiedzi serwera
        """
        response = self._post(
            f"{self.base_url}{self.admin_endpoint}",
            payload,
            params={'task': task},
            timeout=timeout
        )
        if not response.success:
            return response

        body = response.data if isinstance(response.data, dict) else {}
        if body.get('status') != 'success':
            error = body.get('message') or f"Task {task} failed"
            logger.warning(f"[Recordings API] {task}: {error}")
            return APIResponse(success=False, data=body, error=error, status_code=response.status_code)

        return APIResponse(success=True, data=body.get('data'), status_code=response.status_code)

    # =========================================================================
    # CALL LOGS
    # =========================================================================

    def get_call_logs_with_recordings(self, user_id: Union[str, int], limit: int = 200, offset: int = 0) -> APIResponse:
        """
        Pobierz rekordy call-log (kandydaci do dopasowania nagrań).

        Returns:
            APIResponse z data = List[CallLogRecord]
        """
        response = self._admin_task(
            'get_call_logs_with_recordings',
            {'user_id': _user_id_value(user_id), 'limit': limit, 'offset': offset}
        )
        if not response.success:
            return response

        records = self._parse_call_logs(response.data)
        logger.info(f"[Recordings API] Fetched {len(records)} call logs")
        return APIResponse(success=True, data=records, status_code=response.status_code)

    def get_call_logs(self, user_id: Union[str, int], limit: int = 100, offset: int = 0) -> APIResponse:
        """
        Pobierz wpisy call-log już zapisane na serwerze.

        Returns:
            APIResponse z data = lista słowników z serwera
        """
        response = self._admin_task(
            'get_call_logs',
            {'user_id': _user_id_value(user_id), 'limit': limit, 'offset': offset}
        )
        if response.success and not isinstance(response.data, list):
            response.data = []
        return response

    def sync_call_log(self, payload: Dict[str, Any]) -> APIResponse:
        """Wyślij jeden wpis rejestru połączeń (payload z CallLogSyncManager)"""
        return self._admin_task('sync_call_log', payload, timeout=10)

    def _parse_call_logs(self, data: Any) -> List[CallLogRecord]:
        records = []
        for item in data or []:
            if not isinstance(item, dict):
                continue
            try:
                records.append(CallLogRecord.from_dict(item))
            except (TypeError, ValueError) as e:
                logger.warning(f"[Recordings API] Skipping malformed call log: {e}")
        return records

    # =========================================================================
    # UPLOAD
    # =========================================================================

    def build_upload_payload(
        self,
        recording: RecordingFile,
        user_id: Optional[Union[str, int]],
        call_log_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Przygotuj payload uploadu (czyta plik i koduje base64).

        Raises:
            OSError: gdy pliku nie da się odczytać
        """
        with open(recording.file_path, 'rb') as f:
            file_data = base64.b64encode(f.read()).decode('ascii')

        return {
            'phone_number': recording.display_phone_number,
            'raw_phone_number': recording.raw_phone_number,
            'timestamp': recording.captured_at_raw,
            'date': recording.date_label,
            'time': recording.time_label,
            'call_type': recording.call_type.value,
            'file_name': recording.file_name,
            'file_size': recording.size_bytes,
            'duration': format_duration(recording.duration_millis),
            'duration_millis': recording.duration_millis,
            'file_data': file_data,
            'file_identifier': recording.identity_key,
            'call_log_id': call_log_id,
            'user_id': _user_id_value(user_id) if user_id is not None else None,
        }

    def upload_recording(
        self,
        recording: RecordingFile,
        user_id: Optional[Union[str, int]],
        call_log_id: Optional[str] = None
    ) -> APIResponse:
        """
        Wyślij nagranie na serwer.

        Args:
            recording: Nagranie z inwentarza
            user_id: ID użytkownika
            call_log_id: ID rekordu call-log dopasowanego lokalnie (opcjonalnie)

        Returns:
            APIResponse z data = {'matched': bool, 'call_log_id': str|None, 'file_url': str|None}
        """
        try:
            payload = self.build_upload_payload(recording, user_id, call_log_id)
        except OSError as e:
            logger.error(f"[Recordings API] Cannot read {recording.file_name}: {e}")
            return APIResponse(success=False, error=str(e))

        response = self._post(f"{self.base_url}{self.upload_endpoint}", payload)
        if not response.success:
            return response

        body = response.data if isinstance(response.data, dict) else {}
        if not body.get('success'):
            error = body.get('message') or "Upload failed"
            logger.warning(f"[Recordings API] Upload rejected for {recording.file_name}: {error}")
            return APIResponse(success=False, data=body, error=error, status_code=response.status_code)

        server_call_log_id = body.get('call_log_id')
        return APIResponse(
            success=True,
            data={
                'matched': bool(body.get('matched')),
                'call_log_id': str(server_call_log_id) if server_call_log_id else None,
                'file_url': body.get('file_url'),
            },
            status_code=response.status_code
        )


def _user_id_value(user_id: Union[str, int]) -> Union[str, int]:
    """Backend oczekuje liczbowego user_id; nieliczbowe ID wysyłamy bez zmian"""
    if isinstance(user_id, int):
        return user_id
    text = str(user_id).strip()
    return int(text) if text.isdigit() else text
