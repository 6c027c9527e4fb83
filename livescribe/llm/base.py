import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional, Type

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, Field

from ..config import LLMConfig
from ..logging_config import get_logger
from .utils import get_api_credentials

logger = get_logger(__name__)

# Shared thread pool executor for all LLM operations to avoid overhead
_shared_executor = None


def get_shared_executor() -> ThreadPoolExecutor:
    """Get or create the shared thread pool executor for LLM operations."""
    global _shared_executor
    if _shared_executor is None:
        _shared_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="llm-executor")
    return _shared_executor


class LLMClientConfig(BaseModel):
    """Configuration of one UniversalLLM client."""

    model_id: str = Field(default="openai/gpt-4.1-mini", description="Model identifier")
    api_key: Optional[str] = Field(default=None, description="API key (optional, uses env vars)")
    max_output_tokens: int = Field(default=2000, description="Maximum output tokens")
    temperature: float = Field(default=0.0, description="Temperature for generation")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")

    @classmethod
    def from_settings(cls, settings: LLMConfig, model_id: str) -> "LLMClientConfig":
        return cls(
            model_id=model_id,
            api_key=settings.api_key,
            max_output_tokens=settings.max_output_tokens,
            temperature=settings.temperature,
            timeout=settings.timeout,
        )


class UniversalLLM:
    """
    Universal LLM client that provides a consistent interface for all LLM operations.

    This class handles:
    - LLM initialization with OpenRouter or OpenAI credentials
    - Structured output generation against pydantic schemas
    - Async execution on a shared thread pool
    """

    def __init__(self, config: Optional[LLMClientConfig] = None):
        """Initialize the universal LLM client.

        Args:
            config: Configuration for the LLM client
        """
        self.config = config or LLMClientConfig()
        self._llm = None
        self._structured_llms = {}  # Cache for structured LLMs by output type

    def _get_llm(self) -> ChatOpenAI:
        """Get or create the base LLM instance."""
        if self._llm is None:
            api_key, base_url = get_api_credentials()

            if self.config.api_key:
                api_key = self.config.api_key

            if not api_key:
                raise ValueError("No API key found. Set OPENROUTER_API_KEY or OPENAI_API_KEY environment variable.")

            self._llm = ChatOpenAI(
                model=self.config.model_id,
                api_key=api_key,
                base_url=base_url if "/" in self.config.model_id else None,
                temperature=self.config.temperature,
                max_tokens=self.config.max_output_tokens,
                timeout=self.config.timeout,
            )

            logger.info(f"Initialized LLM with model: {self.config.model_id}")

        return self._llm

    def get_structured_llm(self, output_schema: Type[BaseModel]):
        """Get a structured LLM for a specific output schema.

        Args:
            output_schema: Pydantic model defining the output structure

        Returns:
            Runnable: LLM configured for structured output
        """
        schema_name = output_schema.__name__

        if schema_name not in self._structured_llms:
            # function_calling works with both OpenAI and OpenRouter endpoints
            self._structured_llms[schema_name] = self._get_llm().with_structured_output(output_schema, method="function_calling")
            logger.debug(f"Created structured LLM for schema: {schema_name}")

        return self._structured_llms[schema_name]

    async def invoke_structured(self, prompt: ChatPromptTemplate, variables: Dict[str, Any], output_schema: Type[BaseModel]) -> BaseModel:
        """Invoke LLM for structured output.

        Args:
            prompt: Chat prompt template
            variables: Variables to fill in the prompt
            output_schema: Pydantic model for structured output

        Returns:
            BaseModel: Structured response object
        """
        try:
            structured_llm = self.get_structured_llm(output_schema)
            chain = prompt | structured_llm

            executor = get_shared_executor()
            return await asyncio.get_running_loop().run_in_executor(executor, lambda: chain.invoke(variables))

        except Exception as e:
            logger.error(f"Structured generation failed ({output_schema.__name__}): {e}")
            raise

    def get_model_info(self) -> Dict[str, Any]:
        """Get information about the current model configuration."""
        api_key, base_url = get_api_credentials()

        return {
            "model_id": self.config.model_id,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_output_tokens,
            "timeout": self.config.timeout,
            "provider": "openrouter" if base_url else "openai",
            "has_api_key": bool(api_key or self.config.api_key),
        }
