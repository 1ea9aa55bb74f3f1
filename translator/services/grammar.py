"""
Grammar check backed by a multilingual sentiment classifier.
"""

import asyncio
import logging

from ..models.errors import PipelineError
from ..models.results import GrammarResult
from ..resources.factories import CandidateFactory
from ..resources.pipeline_manager import PipelineManager
from ..utils.logger import log_exception

logger = logging.getLogger(__name__)

GRAMMAR_KEY = "grammar"


class GrammarService:
    """Flags text as potentially incorrect from the sentiment of the sentence."""

    def __init__(self,
                 manager: PipelineManager,
                 factory: CandidateFactory,
                 flag_threshold: float = 0.8,
                 inference_timeout: float = 30.0):
        self.manager = manager
        self.factory = factory
        self.flag_threshold = flag_threshold
        self.inference_timeout = inference_timeout

    async def check(self, text: str, retry: bool = False) -> GrammarResult:
        """Check a sentence.

        A negative label or a score above the flag threshold marks the text
        "Incorrect". When the model is unavailable or inference fails the
        result is "Unchecked".
        """
        if not text or not text.strip():
            raise ValueError("Text to check must not be empty")

        if retry:
            self.manager.clear_errors()

        try:
            handle = await self.manager.acquire(GRAMMAR_KEY, self.factory)
            sentiment = await asyncio.wait_for(handle(text), timeout=self.inference_timeout)
        except (PipelineError, asyncio.TimeoutError) as e:
            log_exception(logger, e, context="Grammar check failed")
            return self._unchecked(text, f"Grammar model unavailable: {str(e) or type(e).__name__}")
        except Exception as e:
            log_exception(logger, e, context="Grammar inference failed")
            return self._unchecked(text, f"Grammar check failed: {str(e) or type(e).__name__}")

        flagged = sentiment.label.upper() == 'NEGATIVE' or sentiment.score > self.flag_threshold
        return GrammarResult(
            status="Incorrect" if flagged else "Correct",
            original=text,
            confidence=sentiment.score,
            label=sentiment.label
        )

    @staticmethod
    def _unchecked(text: str, note: str) -> GrammarResult:
        return GrammarResult(
            status="Unchecked",
            original=text,
            confidence=0.0,
            fallback_used=True,
            note=note
        )
