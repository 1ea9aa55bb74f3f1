"""
Typed wrappers around transformers pipelines.

Each handle owns one backend pipeline and normalizes its raw output into a
result dataclass, so callers never inspect backend-specific shapes.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Type

from ..models.errors import InferenceError
from ..models.results import SentimentResult, TranslationResult

logger = logging.getLogger(__name__)


def _preview(output: Any, limit: int = 200) -> str:
    text = repr(output)
    return text if len(text) <= limit else text[:limit] + "..."


def normalize_translation(output: Any) -> str:
    """Extract the translated text from translation pipeline output.

    Raises:
        InferenceError: If the output is not ``[{"translation_text": str}, ...]``
    """
    if isinstance(output, list) and output and isinstance(output[0], dict):
        text = output[0].get('translation_text')
        if isinstance(text, str):
            return text
    raise InferenceError(f"Unexpected translation output: {_preview(output)}")


def normalize_sentiment(output: Any) -> SentimentResult:
    """Extract the top label from text-classification pipeline output.

    Raises:
        InferenceError: If the output is not ``[{"label": str, "score": float}, ...]``
    """
    if isinstance(output, list) and output and isinstance(output[0], dict):
        label = output[0].get('label')
        score = output[0].get('score')
        if isinstance(label, str) and isinstance(score, (int, float)):
            return SentimentResult(label=label, score=float(score))
    raise InferenceError(f"Unexpected sentiment output: {_preview(output)}")


class PipelineHandle:
    """Base handle: runs the wrapped pipeline in a worker thread."""

    def __init__(self, pipeline: Any, model_name: str, parameters: Optional[Dict[str, Any]] = None):
        self._pipeline = pipeline
        self.model_name = model_name
        self.parameters = dict(parameters or {})

    @property
    def released(self) -> bool:
        return self._pipeline is None

    def close(self) -> None:
        """Drop the backend pipeline so its memory can be reclaimed."""
        if self._pipeline is not None:
            logger.debug(f"Releasing pipeline {self.model_name}")
            self._pipeline = None

    async def _run(self, *args: Any, **kwargs: Any) -> Any:
        pipeline = self._pipeline
        if pipeline is None:
            raise InferenceError(f"Pipeline {self.model_name} has been released")
        return await asyncio.to_thread(pipeline, *args, **kwargs)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model_name!r})"


class TranslationHandle(PipelineHandle):
    """Translation pipeline returning ``TranslationResult``."""

    async def __call__(self,
                       text: str,
                       src_lang: Optional[str] = None,
                       tgt_lang: Optional[str] = None) -> TranslationResult:
        src_lang = src_lang or self.parameters.get('src_lang')
        tgt_lang = tgt_lang or self.parameters.get('tgt_lang')

        options = {}
        if src_lang:
            options['src_lang'] = src_lang
        if tgt_lang:
            options['tgt_lang'] = tgt_lang

        output = await self._run(text, **options)
        return TranslationResult(
            translation_text=normalize_translation(output),
            source_lang=src_lang,
            target_lang=tgt_lang,
            model=self.model_name
        )


class SentimentHandle(PipelineHandle):
    """Sentiment pipeline returning ``SentimentResult``."""

    async def __call__(self, text: str) -> SentimentResult:
        output = await self._run(text)
        return normalize_sentiment(output)


HANDLE_TYPES: Dict[str, Type[PipelineHandle]] = {
    'translation': TranslationHandle,
    'sentiment-analysis': SentimentHandle,
    'text-classification': SentimentHandle,
}


def handle_type_for(task: str) -> Type[PipelineHandle]:
    """Resolve the handle class for a transformers task name."""
    # Task names such as "translation_en_to_fr" share the translation handle
    if task.startswith('translation'):
        return TranslationHandle
    if task not in HANDLE_TYPES:
        raise ValueError(f"No pipeline handle for task: {task}")
    return HANDLE_TYPES[task]
