# services/rhythmiq/lib/chat_relay.py

import logging
from typing import Dict, List, Optional

from . import config
from .errors import CreditsExhaustedError, GatewayError, RateLimitError
from .gateway import AIGatewayClient
from ..models import AnalysisResult, ChatMessage

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a few moments."
CREDITS_EXHAUSTED_MESSAGE = "AI service credits exhausted. Please contact support."

ASSISTANT_INSTRUCTIONS = """You are a helpful AI medical assistant. Explain these ECG results in simple, clear language.
Provide context about what the measurements mean and whether they indicate normal or abnormal heart function.
Always recommend consulting a healthcare professional for serious concerns.
Be reassuring but honest. Keep responses concise and easy to understand."""


def build_context_message(analysis: AnalysisResult) -> str:
    """Render the analysis into the system preamble for the assistant."""
    diagnosis = analysis.diagnosis
    lines = [
        "The patient's ECG analysis shows:",
        f"- Heart Rate: {analysis.heart_rate} BPM",
        f"- PR Interval: {analysis.pr_interval} ms",
        f"- QRS Duration: {analysis.qrs_duration} ms",
        f"- QT Interval: {analysis.qt_interval} ms",
        f"- ST Segment: {analysis.st_segment}",
        f"- Diagnosis: {diagnosis.status.upper()}",
    ]
    if diagnosis.condition:
        lines.append(f"- Condition: {diagnosis.condition}")
    lines.append(f"- Details: {diagnosis.details}")

    return "\n".join(lines) + "\n\n" + ASSISTANT_INSTRUCTIONS


class ChatRelay:
    """Stateless relay: context preamble + caller's conversation, one upstream call."""

    def __init__(self, gateway: AIGatewayClient, model: Optional[str] = None):
        self.gateway = gateway
        self.model = model or config.get_chat_model()

    def build_messages(self, messages: List[ChatMessage], analysis: AnalysisResult) -> List[Dict[str, str]]:
        outbound = [{"role": "system", "content": build_context_message(analysis)}]
        outbound.extend({"role": m.role, "content": m.content} for m in messages)
        return outbound

    async def reply(self, messages: List[ChatMessage], analysis: AnalysisResult) -> str:
        outbound = self.build_messages(messages, analysis)
        try:
            return await self.gateway.complete(self.model, outbound)
        except GatewayError as e:
            if e.upstream_status == 429:
                raise RateLimitError(RATE_LIMIT_MESSAGE, upstream_status=429) from e
            if e.upstream_status == 402:
                raise CreditsExhaustedError(CREDITS_EXHAUSTED_MESSAGE, upstream_status=402) from e
            raise
