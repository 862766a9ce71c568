# File: services/rhythmiq/models.py
# Shared Pydantic models. Wire format is camelCase, attributes are snake_case.

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DiagnosisStatus = Literal["normal", "abnormal"]
ChatRole = Literal["user", "assistant"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Diagnosis(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    status: DiagnosisStatus
    condition: Optional[str] = None
    details: str
    confidence: Optional[int] = Field(default=None, ge=0, le=100)
    ensemble_agreement: Optional[str] = None


class AnalysisResult(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    heart_rate: int
    pr_interval: int
    qrs_duration: int
    qt_interval: int
    st_segment: str
    diagnosis: Diagnosis
    waveform_data: List[float] = []


class OpinionDiagnosis(CamelModel):
    """Diagnosis block as one persona reports it; looser than the final one."""
    status: DiagnosisStatus
    condition: Optional[str] = None
    details: str = ""
    confidence: Optional[float] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ModelOpinion(CamelModel):
    heart_rate: float
    pr_interval: float
    qrs_duration: float
    qt_interval: float
    st_segment: str = ""
    diagnosis: OpinionDiagnosis


class ChatMessage(CamelModel):
    role: ChatRole
    content: str


# --- REQUEST / RESPONSE BODIES ---
class AnalyzeRequest(CamelModel):
    image: str = Field(min_length=1)


class ChatRequest(CamelModel):
    messages: List[ChatMessage]
    analysis: AnalysisResult


class ChatReply(CamelModel):
    message: str


class ErrorEnvelope(CamelModel):
    error: str
