"""Schemas for the speech proxy endpoints."""

from pydantic import ConfigDict, Field

from .base import BaseSchema

__all__ = ["SynthesisMetadata", "SynthesisResult", "TranscriptionResult"]


class TranscriptionResult(BaseSchema):
    """Recognized text of one recording."""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    processing_time: int = Field(..., alias="processingTime")


class SynthesisMetadata(BaseSchema):
    """Timings and sizes reported with synthesized audio."""

    model_config = ConfigDict(populate_by_name=True)

    processing_time: int = Field(..., alias="processingTime")
    api_time: int = Field(..., alias="apiTime")
    conversion_time: int = Field(..., alias="conversionTime")
    audio_size: int = Field(..., alias="audioSize")
    text_length: int = Field(..., alias="textLength")
    truncated: bool


class SynthesisResult(BaseSchema):
    """Base64 encoded MP3 audio."""

    model_config = ConfigDict(populate_by_name=True)

    audio_content: str = Field(..., alias="audioContent")
    metadata: SynthesisMetadata
