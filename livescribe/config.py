from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

# =============================================================================
# Core Configuration Classes
# =============================================================================


class LLMConfig(BaseSettings):
    """Language model configuration with environment variable support."""

    # Model identifiers
    analysis_llm: str = Field(default="openai/gpt-4.1-mini", description="Model answering questions about the transcript")
    translation_llm: str = Field(default="openai/gpt-4.1-nano", description="Fast model for per-segment translation")
    language_llm: str = Field(default="openai/gpt-4.1-nano", description="Fast model for language identification")

    # API Configuration
    api_key: Optional[str] = Field(default=None, description="LLM API key (falls back to OPENROUTER_API_KEY / OPENAI_API_KEY)")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Sampling temperature")
    timeout: float = Field(default=30.0, gt=0, le=300, description="Client-side request timeout in seconds")
    max_output_tokens: int = Field(default=2000, gt=0, le=100000, description="Maximum output tokens per call")

    # Analyzer input
    max_context_chars: int = Field(default=3000, gt=100, description="Transcript context passed to the analyzer is truncated to this length")

    # Translator cache
    translation_cache_size: int = Field(default=200, ge=0, description="Number of (text, target) translations kept in memory")

    class Config:
        env_file = ".env"
        env_prefix = "LLM_"
        extra = "ignore"


class GuardConfig(BaseModel):
    """Thresholds for automatic dispatch of one enrichment kind."""

    cooldown_ms: int = Field(default=2000, ge=0, description="Minimum time between two automatic dispatches")
    min_chars: int = Field(default=25, ge=0, description="Text at least this long is always significant")
    min_words: int = Field(default=2, ge=1, description="Shorter text needs this many words plus terminal punctuation")
    repeats_within_cooldown_only: bool = Field(default=False, description="Reject an exact repeat only while the cooldown window is open")


class DispatchConfig(BaseModel):
    """Enrichment dispatch configuration."""

    timeout: float = Field(default=30.0, gt=0, le=300, description="Enrichment calls exceeding this many seconds become errors")
    language: GuardConfig = Field(default_factory=GuardConfig)
    analysis: GuardConfig = Field(default_factory=lambda: GuardConfig(cooldown_ms=1500, min_chars=10))
    translation: GuardConfig = Field(default_factory=lambda: GuardConfig(cooldown_ms=0, min_chars=6, repeats_within_cooldown_only=True))


class FeatureConfig(BaseModel):
    """Feature flags configuration."""

    auto_analysis: bool = Field(default=True, description="Ask the LLM automatically when a segment looks like a question")
    auto_language_detection: bool = Field(default=True, description="Detect the spoken language of new segments")
    auto_translation: bool = Field(default=False, description="Translate every new segment automatically")


class SessionConfig(BaseModel):
    """Per-session transcription settings."""

    language: str = Field(default="pt-BR", description="Recognition language at session start")
    translation_target: str = Field(default="en-US", description="Target language for translations")
    enabled_languages: List[str] = Field(default=["pt-BR", "en-US", "es-ES"], description="Languages the session may switch to")
    context_segments: int = Field(default=20, gt=0, description="Recent segment texts kept as analysis context")

    # Rolling language majority
    language_window: int = Field(default=5, gt=0, description="Recent confident detections considered for a switch")
    language_switch_votes: int = Field(default=3, gt=0, description="Votes in the window needed to switch language")
    language_min_confidence: float = Field(default=0.85, ge=0.0, le=1.0, description="Detections at or below this are ignored")
    language_instant_confidence: float = Field(default=0.92, ge=0.0, le=1.0, description="A single detection this confident switches immediately")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[str] = Field(default="logs", description="Log directory (None disables the file handler)")
    log_file: str = Field(default="last_run.log", description="Log file name, truncated at startup")


# =============================================================================
# Unified Configuration Class
# =============================================================================


class UnifiedConfig(BaseSettings):
    """Unified configuration for livescribe."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    features: FeatureConfig = Field(default_factory=FeatureConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    class Config:
        env_file = ".env"
        extra = "ignore"


# =============================================================================
# Global Configuration Instance
# =============================================================================


# Default configuration, used by components that are not handed one explicitly
_config: Optional[UnifiedConfig] = None


def get_config() -> UnifiedConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = UnifiedConfig()
    return _config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None


def update_config(**kwargs) -> UnifiedConfig:
    """Update configuration sections with new values.

    Args:
        **kwargs: Section name mapped to either a section model or a dict of field updates

    Returns:
        UnifiedConfig: The updated global configuration
    """
    config = get_config()
    for key, value in kwargs.items():
        if not hasattr(config, key):
            raise ValueError(f"Unknown configuration section: {key}")
        if isinstance(value, dict):
            section = getattr(config, key)
            setattr(config, key, section.model_copy(update=value))
        else:
            setattr(config, key, value)
    return config


def get_runtime_settings() -> Dict[str, Any]:
    """Get the settings a UI may change while a session is running."""
    config = get_config()
    return {
        "auto_analysis": config.features.auto_analysis,
        "auto_language_detection": config.features.auto_language_detection,
        "auto_translation": config.features.auto_translation,
        "translation_target": config.session.translation_target,
        "enabled_languages": list(config.session.enabled_languages),
    }


# =============================================================================
# Environment Setup
# =============================================================================


def setup_environment() -> None:
    """Load the .env file and prepare the log directory."""
    from dotenv import load_dotenv

    load_dotenv()

    config = get_config()
    if config.logging.log_dir:
        Path(config.logging.log_dir).mkdir(parents=True, exist_ok=True)
