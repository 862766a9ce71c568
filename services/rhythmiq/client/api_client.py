# services/rhythmiq/client/api_client.py
from typing import List, Optional

import httpx
from pydantic import ValidationError

from ..lib import config
from ..models import AnalysisResult, ChatMessage, ChatReply


class BackendError(Exception):
    """Backend answered with an error, an unreadable body, or not at all."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RhythmIQClient:
    def __init__(self, http: Optional[httpx.Client] = None, base_url: Optional[str] = None):
        self.base_url = (base_url if base_url is not None else config.get_backend_url()).rstrip("/")
        self.http = http or httpx.Client(timeout=None)

    def _post(self, endpoint: str, payload: dict) -> dict:
        try:
            r = self.http.post(f"{self.base_url}{endpoint}", json=payload)
        except httpx.HTTPError as e:
            raise BackendError(f"Backend unreachable: {e}") from e

        try:
            data = r.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = {}

        if r.is_error:
            raise BackendError(str(data.get("error") or f"HTTP {r.status_code}"), r.status_code)
        if not data:
            raise BackendError(f"{endpoint} returned an unreadable body", r.status_code)
        return data

    def analyze_ecg(self, image: str) -> AnalysisResult:
        data = self._post("/analyze-ecg", {"image": image})
        try:
            return AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise BackendError(f"/analyze-ecg returned an unexpected result: {e}") from e

    def ecg_chat(self, messages: List[ChatMessage], analysis: AnalysisResult) -> str:
        payload = {
            "messages": [m.model_dump(by_alias=True) for m in messages],
            "analysis": analysis.model_dump(by_alias=True, exclude_none=True),
        }
        data = self._post("/ecg-chat", payload)
        try:
            return ChatReply.model_validate(data).message
        except ValidationError as e:
            raise BackendError(f"/ecg-chat returned an unexpected reply: {e}") from e
