"""
Candidate-cascading pipeline factories.

A factory tries an ordered list of backend candidates until one builds. Each
failure is logged and the next candidate is tried. Only exhausting the list
raises.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from config.settings import ModelConfig
from ..models.errors import CandidateFailure, LoadError
from ..models.results import LoadedPipeline, ModelInfo
from ..pipelines.handles import handle_type_for

logger = logging.getLogger(__name__)

RESOURCE_EXHAUSTION_MARKERS = ('memory', 'aborted', 'timeout', 'enomem', 'out of memory')


@dataclass(frozen=True)
class Candidate:
    """One backend a factory may try."""
    name: str
    task: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], task: str) -> "Candidate":
        """Build a candidate from a config mapping.

        Keys other than ``name``, ``task`` and ``description`` become parameters.
        """
        values = dict(data)
        name = values.pop('name')
        task = values.pop('task', task)
        description = values.pop('description', '')
        return cls(name=name, task=task, parameters=values, description=description)

    def to_model_info(self) -> ModelInfo:
        return ModelInfo(
            name=self.name,
            task=self.task,
            description=self.description,
            parameters=dict(self.parameters)
        )


CandidateBuilder = Callable[[Candidate], Awaitable[Any]]


def is_resource_exhaustion(error: BaseException) -> bool:
    """Whether a load failure looks like memory pressure or a timeout."""
    if isinstance(error, (MemoryError, TimeoutError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in RESOURCE_EXHAUSTION_MARKERS)


class CandidateFactory:
    """Builds a pipeline handle from the first candidate that loads."""

    def __init__(self,
                 key: str,
                 candidates: Sequence[Candidate],
                 builder: CandidateBuilder,
                 allowed_patterns: Optional[Iterable[str]] = None,
                 candidate_timeout: Optional[float] = None):
        """Initialize candidate factory.

        Args:
            key: Cache key the factory serves, used in messages
            candidates: Backends in priority order
            builder: Coroutine function building a handle for one candidate
            allowed_patterns: Regex patterns a candidate name must match, any name if None
            candidate_timeout: Time budget per candidate in seconds
        """
        self.key = key
        self.candidates: List[Candidate] = list(candidates)
        self._builder = builder
        self._patterns = [re.compile(pattern, re.IGNORECASE) for pattern in allowed_patterns or []]
        self.candidate_timeout = candidate_timeout

        self.winner: Optional[Candidate] = None
        self.failures: List[CandidateFailure] = []

    @property
    def model_info(self) -> Optional[ModelInfo]:
        return self.winner.to_model_info() if self.winner else None

    def accepts(self, candidate: Candidate) -> bool:
        if not self._patterns:
            return True
        return any(pattern.search(candidate.name) for pattern in self._patterns)

    async def __call__(self) -> LoadedPipeline:
        """Build the first candidate that loads.

        Each call keeps its own attempt state, so concurrent calls never see
        each other's winner. ``winner`` and ``failures`` reflect the call that
        finished last.

        Returns:
            The handle together with the winning candidate's ``ModelInfo``

        Raises:
            LoadError: If no candidate could be built
        """
        failures: List[CandidateFailure] = []
        last_error: Optional[Exception] = None

        logger.info(f"Loading {self.key} pipeline...")

        for candidate in self.candidates:
            if not self.accepts(candidate):
                logger.warning(f"Skipping {candidate.name} - not a {self.key} model")
                continue

            logger.info(f"Attempting to load model: {candidate.name}")
            try:
                handle = await self._build(candidate)
            except Exception as e:
                last_error = e
                failure = CandidateFailure(
                    candidate=candidate.name,
                    error_type=type(e).__name__,
                    message=str(e),
                    resource_exhaustion=is_resource_exhaustion(e)
                )
                failures.append(failure)

                if failure.resource_exhaustion:
                    logger.warning(f"Memory/timeout error with {candidate.name}, trying next model: {e}")
                else:
                    logger.warning(f"Failed to load model {candidate.name}, trying next model: {e}")
                continue

            self.winner = candidate
            self.failures = failures
            logger.info(f"Successfully loaded {self.key} pipeline with model: {candidate.name}")
            return LoadedPipeline(handle=handle, model_info=candidate.to_model_info())

        self.winner = None
        self.failures = failures

        if last_error is None:
            raise LoadError(
                f"Failed to load any {self.key} model. No candidate matched the allowed model names",
                key=self.key
            )
        raise LoadError(
            f"Failed to load any {self.key} model. Last error: {last_error}",
            key=self.key
        ) from last_error

    async def _build(self, candidate: Candidate) -> Any:
        if self.candidate_timeout is None:
            return await self._builder(candidate)
        try:
            return await asyncio.wait_for(self._builder(candidate), timeout=self.candidate_timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Pipeline creation timeout for {candidate.name}") from None


def transformers_builder(device: str) -> CandidateBuilder:
    """Create a builder that loads candidates with ``transformers.pipeline``.

    Args:
        device: Device to load on, e.g. "cpu" or "cuda"
    """
    async def build(candidate: Candidate) -> Any:
        from transformers import pipeline

        handle_type = handle_type_for(candidate.task)
        logger.debug(f"Creating {candidate.task} pipeline for {candidate.name} on {device}")

        # Model download and weight loading block, keep them off the event loop
        backend = await asyncio.to_thread(
            pipeline,
            candidate.task,
            model=candidate.name,
            device=device
        )
        return handle_type(backend, candidate.name, candidate.parameters)

    return build


def build_translation_factory(config: ModelConfig, builder: CandidateBuilder) -> CandidateFactory:
    candidates = [Candidate.from_dict(data, config.translation_task)
                  for data in config.translation_candidates]
    return CandidateFactory(
        key="translation",
        candidates=candidates,
        builder=builder,
        allowed_patterns=config.translation_patterns,
        candidate_timeout=config.candidate_timeout
    )


def build_grammar_factory(config: ModelConfig, builder: CandidateBuilder) -> CandidateFactory:
    candidate = Candidate(
        name=config.grammar_model,
        task=config.grammar_task,
        description="Multilingual sentiment classifier used as a grammar signal"
    )
    return CandidateFactory(key="grammar", candidates=[candidate], builder=builder)
