# File: services/rhythmiq/core/ensemble_council.py

import asyncio
import logging
from typing import Dict, List, Optional

import numpy as np
from pydantic import ValidationError

from ..lib import config
from ..lib.errors import GatewayError, OpinionParseError
from ..lib.gateway import AIGatewayClient
from ..lib.utils import parse_llm_json_response, round_half_up
from ..models import AnalysisResult, Diagnosis, ModelOpinion
from .waveform import generate_synthetic_waveform

logger = logging.getLogger(__name__)

PERSONAS = ("cnn", "bilstm", "transformer")

DEFAULT_CONFIDENCE = 85
IMAGE_PREVIEW_CHARS = 100

PERSONA_PROMPTS: Dict[str, str] = {
    "cnn": """You are a CNN-based ECG pattern recognition system. Analyze the ECG image focusing on:
- Spatial patterns and waveform morphology
- P wave, QRS complex, and T wave shapes
- ST segment elevation/depression
- Rhythm regularity and visual abnormalities

Detect: Arrhythmia, Ischemia, Conduction blocks, Myocardial infarction patterns.""",

    "bilstm": """You are a BiLSTM-based temporal sequence analyzer. Analyze the ECG focusing on:
- Temporal patterns and rhythm consistency
- R-R interval variations
- Heart rate variability
- Sequential abnormalities over time

Detect: Atrial fibrillation, Flutter, Bradycardia, Tachycardia, irregular rhythms.""",

    "transformer": """You are a Transformer-based attention mechanism for ECG analysis. Focus on:
- Long-range dependencies in the signal
- Subtle pattern correlations across leads
- Complex arrhythmia patterns
- Multi-lead signal coherence

Detect: Complex arrhythmias, Bundle branch blocks, Axis deviations, Chamber enlargements.""",
}

RESPONSE_FORMAT = """Return ONLY valid JSON in this exact format:
{
  "heartRate": number,
  "prInterval": number,
  "qrsDuration": number,
  "qtInterval": number,
  "stSegment": "description",
  "diagnosis": {
    "status": "normal" or "abnormal",
    "condition": "specific condition name",
    "details": "detailed clinical explanation",
    "confidence": number (0-100)
  }
}"""


class EnsembleCouncil:
    """
    Three persona prompts against the same gateway model, joined into one
    AnalysisResult by averaging and majority vote.
    """
    def __init__(self, gateway: AIGatewayClient, model: Optional[str] = None,
                 rng: Optional[np.random.Generator] = None):
        self.gateway = gateway
        self.model = model or config.get_analysis_model()
        self.rng = rng

    # --- MAIN WORKFLOW ---
    async def run_ensemble_analysis(self, image: str) -> AnalysisResult:
        logger.info("Starting ensemble ECG analysis...")

        tasks = [asyncio.create_task(self._persona_analysis(persona, image)) for persona in PERSONAS]
        try:
            opinions = await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            raise

        result = aggregate_opinions(opinions)
        return result.model_copy(
            update={"waveform_data": generate_synthetic_waveform(rng=self.rng)}
        )

    # --- PERSONA CALLS ---
    def build_persona_messages(self, persona: str, image: str) -> List[Dict[str, str]]:
        return [
            {
                "role": "system",
                "content": f"{PERSONA_PROMPTS[persona]}\n\n{RESPONSE_FORMAT}",
            },
            {
                "role": "user",
                "content": (
                    "Analyze this ECG image and provide detailed measurements. "
                    f"Image data: {image[:IMAGE_PREVIEW_CHARS]}..."
                ),
            },
        ]

    async def _persona_analysis(self, persona: str, image: str) -> ModelOpinion:
        messages = self.build_persona_messages(persona, image)
        try:
            content = await self.gateway.complete(self.model, messages)
        except GatewayError as e:
            if e.upstream_status is not None:
                raise GatewayError(
                    f"{persona} analysis failed: {e.upstream_status}",
                    upstream_status=e.upstream_status,
                ) from e
            raise GatewayError(f"{persona} analysis failed: {e.message}") from e

        opinion = parse_opinion(persona, content)
        logger.info(f"{persona} analysis completed")
        return opinion


def parse_opinion(persona: str, content: str) -> ModelOpinion:
    """Pull the persona's JSON object out of its reply and validate its shape."""
    data = parse_llm_json_response(content)
    if data is None:
        logger.error(f"Failed to parse {persona} response: no JSON found. Content: {content[:500]}")
        raise OpinionParseError(persona, content)
    try:
        return ModelOpinion.model_validate(data)
    except ValidationError as e:
        logger.error(f"Failed to parse {persona} response: {e}. Content: {content[:500]}")
        raise OpinionParseError(persona, content) from e


# --- AGGREGATION ---
def _mean(values) -> float:
    values = list(values)
    return sum(values) / len(values)


def aggregate_opinions(opinions: List[ModelOpinion]) -> AnalysisResult:
    """
    Combine persona opinions:
    - numeric measurements are averaged and rounded
    - status is decided by majority vote
    - missing confidences count as 85
    - distinct non-"Normal" conditions are joined with ", "
    - the longest details text wins, first seen on ties
    - the ST segment text comes from the first opinion unchanged
    """
    if not opinions:
        raise ValueError("at least one opinion is required")

    logger.info(f"Aggregating ensemble results from {len(opinions)} models")

    abnormal_count = sum(1 for o in opinions if o.diagnosis.status == "abnormal")
    is_abnormal = abnormal_count * 2 > len(opinions)

    confidence = round_half_up(_mean(
        o.diagnosis.confidence if o.diagnosis.confidence is not None else DEFAULT_CONFIDENCE
        for o in opinions
    ))

    conditions = []
    for o in opinions:
        condition = o.diagnosis.condition
        if condition and condition != "Normal" and condition not in conditions:
            conditions.append(condition)

    details = max((o.diagnosis.details for o in opinions), key=len)

    return AnalysisResult(
        heart_rate=round_half_up(_mean(o.heart_rate for o in opinions)),
        pr_interval=round_half_up(_mean(o.pr_interval for o in opinions)),
        qrs_duration=round_half_up(_mean(o.qrs_duration for o in opinions)),
        qt_interval=round_half_up(_mean(o.qt_interval for o in opinions)),
        st_segment=opinions[0].st_segment,
        diagnosis=Diagnosis(
            status="abnormal" if is_abnormal else "normal",
            condition=", ".join(conditions) if conditions else None,
            details=details,
            confidence=max(0, min(100, confidence)),
            ensemble_agreement=f"{len(opinions)} models analyzed - {abnormal_count} detected abnormalities",
        ),
    )
