from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


def _as_text(value: Any) -> str:
    """Map any non-text input to the empty string, trim text."""
    return value.strip() if isinstance(value, str) else ""


class ChatRequest(BaseModel):
    grado: str = Field("", description="Learner's grade or level")
    tema: str = Field("", description="Question or topic to explain")

    @field_validator("grado", "tema", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def is_complete(self) -> bool:
        return bool(self.grado) and bool(self.tema)


class ChatResponse(BaseModel):
    respuesta: str


class ErrorResponse(BaseModel):
    error: str


class UsageRecord(BaseModel):
    """A stored chat exchange. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    grado: str
    tema: str
    respuesta: str
    fecha: datetime

    @field_serializer("fecha")
    def serialize_fecha(self, fecha: datetime) -> str:
        return fecha.isoformat()


class EnvReport(BaseModel):
    OPENAI: bool
    MONGO: bool
    MODEL: str
    PORT: int
