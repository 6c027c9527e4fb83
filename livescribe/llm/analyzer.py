import time
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate

from ..config import LLMConfig, get_config
from ..errors import EnrichmentError
from ..logging_config import get_logger
from .base import LLMClientConfig, UniversalLLM
from .types import AnalysisResponse
from .utils import truncate_context

logger = get_logger(__name__)


class LLMAnalyzer:
    """
    Answers a question raised in a segment, using the recent transcript as context.

    Satisfies the `analyze(transcript_context, question)` enrichment contract.
    """

    def __init__(self, settings: Optional[LLMConfig] = None, client: Optional[UniversalLLM] = None):
        self.settings = settings or get_config().llm
        self._llm_client = client or UniversalLLM(LLMClientConfig.from_settings(self.settings, self.settings.analysis_llm))
        self._prompt = None

    @property
    def llm_client(self) -> UniversalLLM:
        return self._llm_client

    @property
    def prompt(self) -> ChatPromptTemplate:
        """Lazy initialization of prompt template to speed up startup."""
        if self._prompt is None:
            self._prompt = ChatPromptTemplate.from_messages(
                [
                    (
                        "system",
                        """You are listening to a live conversation through a speech recognizer. Someone just said something that sounds like a question, a calculation or a doubt.
Answer it directly and naturally, as in a normal conversation. Keep it short. Recognition errors are common, so infer the intended words when the text is garbled.
Always respond in the same language as the question.""",
                    ),
                    (
                        "human",
                        """Recent transcript:
{transcription}

What was just said:
{question}""",
                    ),
                ]
            )
        return self._prompt

    async def analyze(self, transcript_context: str, question: str) -> AnalysisResponse:
        """Generate an answer for `question`.

        Args:
            transcript_context: Earlier transcript, oldest first; truncated to the most recent part
            question: The segment text that triggered the analysis

        Returns:
            AnalysisResponse: Answer and confidence
        """
        if not question or not question.strip():
            raise EnrichmentError("Nothing to analyze")

        context = truncate_context(transcript_context or "", self.settings.max_context_chars)
        start_time = time.time()

        result = await self.llm_client.invoke_structured(
            self.prompt,
            {"transcription": context or "(nothing said before)", "question": question.strip()},
            AnalysisResponse,
        )

        if not result.answer or not result.answer.strip():
            raise EnrichmentError("The model returned an empty answer")

        logger.info(f"Answered {question[:40]!r} in {time.time() - start_time:.2f}s (confidence {result.confidence:.2f})")
        return result
