from typing import List

from pydantic import BaseModel, Field


class AnalysisResponse(BaseModel):
    """Structured answer to a question raised in the transcript."""

    answer: str = Field(description="Direct, conversational answer to the question, in the language of the question.")
    confidence: float = Field(default=0.8, ge=0.0, le=1.0, description="How confident the answer is, from 0 to 1.")


class TranslationResponse(BaseModel):
    """Structured translation of one transcript segment."""

    translated_text: str = Field(description="Faithful translation of the text into the target language.")
    confidence: float = Field(default=0.9, ge=0.0, le=1.0, description="Translation confidence from 0 to 1.")


class LanguageDetectionResponse(BaseModel):
    """Structured language identification result."""

    language_code: str = Field(description="BCP-47 code of the spoken language, one of the candidate codes, e.g. 'pt-BR'.")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Detection confidence from 0 to 1.")
    alternatives_considered: List[str] = Field(default_factory=list, description="Other candidate codes that were plausible.")
