# services/rhythmiq/client/session.py
"""
Transient viewer state: uploaded image, latest analysis, chat transcript and
toast notifications. Nothing here is persisted.
"""
import base64
import logging
import mimetypes
from dataclasses import dataclass
from typing import List, Optional

from .api_client import BackendError, RhythmIQClient
from ..models import AnalysisResult, ChatMessage

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I'm your AI ECG assistant. I can help explain your results and answer "
    "any questions you have about your ECG analysis. What would you like to know?"
)


class InvalidImageError(ValueError):
    pass


@dataclass(frozen=True)
class Notice:
    title: str
    description: str
    destructive: bool = False


def encode_image(filename: str, data: bytes, content_type: Optional[str] = None) -> str:
    """Validate the MIME type and return a base64 data URI."""
    mime = content_type or mimetypes.guess_type(filename)[0] or ""
    if not mime.startswith("image/"):
        raise InvalidImageError(f"{filename} is not an image ({mime or 'unknown type'})")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


class ViewerSession:
    def __init__(self, client: RhythmIQClient):
        self.client = client
        self.uploaded_image: Optional[str] = None
        self.analysis: Optional[AnalysisResult] = None
        self.messages: List[ChatMessage] = [ChatMessage(role="assistant", content=GREETING)]
        self.notices: List[Notice] = []
        self.is_analyzing = False
        self.is_chatting = False

    def _notify(self, title: str, description: str, destructive: bool = False):
        self.notices.append(Notice(title, description, destructive))

    # --- UPLOAD ---
    def load_image(self, filename: str, data: bytes, content_type: Optional[str] = None) -> bool:
        try:
            self.uploaded_image = encode_image(filename, data, content_type)
        except InvalidImageError as e:
            logger.info(f"Rejected upload: {e}")
            self._notify("Invalid file type", "Please upload an image file (JPG, PNG, or PDF)", destructive=True)
            return False
        return True

    def clear(self):
        self.uploaded_image = None
        self.analysis = None
        # a new strip starts a new conversation
        self.messages = [ChatMessage(role="assistant", content=GREETING)]

    # --- ANALYSIS ---
    def analyze(self) -> Optional[AnalysisResult]:
        if not self.uploaded_image or self.is_analyzing:
            return None

        self.is_analyzing = True
        try:
            self.analysis = self.client.analyze_ecg(self.uploaded_image)
            self._notify("Analysis Complete", "Your ECG has been successfully analyzed")
            return self.analysis
        except BackendError as e:
            logger.error(f"Analysis error: {e}")
            self._notify("Analysis Failed", "Unable to analyze ECG. Please try again.", destructive=True)
            return None
        finally:
            self.is_analyzing = False

    # --- CHAT ---
    def ask(self, text: str) -> Optional[str]:
        if not text.strip() or self.is_chatting or self.analysis is None:
            return None

        user_message = ChatMessage(role="user", content=text)
        self.messages.append(user_message)
        self.is_chatting = True
        try:
            reply = self.client.ecg_chat(list(self.messages), self.analysis)
        except BackendError as e:
            logger.error(f"Chat error: {e}")
            self._notify("Chat Error", "Unable to get response. Please try again.", destructive=True)
            return None
        finally:
            self.is_chatting = False

        self.messages.append(ChatMessage(role="assistant", content=reply))
        return reply
