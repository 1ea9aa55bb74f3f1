"""
Composition root wiring the pipeline manager, factories and services.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from config.settings import Config
from .models.errors import PipelineError
from .models.results import GrammarResult, ModelInfo, TranslationResult
from .resources.factories import (
    CandidateBuilder,
    CandidateFactory,
    build_grammar_factory,
    build_translation_factory,
    transformers_builder
)
from .resources.pipeline_manager import PipelineManager
from .services.grammar import GRAMMAR_KEY, GrammarService
from .services.translation import TRANSLATION_KEY, FallbackDictionary, TranslationService
from .utils.memory import get_optimal_device

logger = logging.getLogger(__name__)


class TranslatorApp:
    """Owns one pipeline manager and the services that share it.

    Example usage:

        async with TranslatorApp(Config.from_env()) as app:
            result = await app.translate("hello friend")
            print(result.translation_text, app.get_cache_stats())
    """

    def __init__(self,
                 config: Optional[Config] = None,
                 builder: Optional[CandidateBuilder] = None,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize the application.

        Args:
            config: Service configuration, defaults if None
            builder: Candidate builder, transformers pipelines if None
            clock: Time source handed to the pipeline manager
        """
        self.config = config or Config()

        if builder is None:
            device = get_optimal_device(self.config.model.use_gpu, self.config.model.device)
            logger.info(f"Pipelines will be loaded on {device}")
            builder = transformers_builder(device)

        self.manager = PipelineManager(
            self.config.cache,
            clock=clock,
            log_memory_usage=self.config.logging.log_memory_usage
        )
        self.factories: Dict[str, CandidateFactory] = {
            TRANSLATION_KEY: build_translation_factory(self.config.model, builder),
            GRAMMAR_KEY: build_grammar_factory(self.config.model, builder),
        }

        self.translation = TranslationService(
            self.manager,
            self.factories[TRANSLATION_KEY],
            FallbackDictionary.load(self.config.data.fallback_dictionary),
            inference_timeout=self.config.model.inference_timeout,
            source_lang=self.config.model.source_lang,
            target_lang=self.config.model.target_lang
        )
        self.grammar = GrammarService(
            self.manager,
            self.factories[GRAMMAR_KEY],
            flag_threshold=self.config.model.grammar_flag_threshold,
            inference_timeout=self.config.model.inference_timeout
        )

    async def translate(self,
                        text: str,
                        source_lang: Optional[str] = None,
                        target_lang: Optional[str] = None,
                        retry: bool = False) -> TranslationResult:
        return await self.translation.translate(text, source_lang, target_lang, retry=retry)

    async def check_grammar(self, text: str, retry: bool = False) -> GrammarResult:
        return await self.grammar.check(text, retry=retry)

    async def warmup(self, keys: Optional[Iterable[str]] = None) -> Dict[str, Optional[str]]:
        """Load pipelines ahead of the first request.

        Returns:
            Mapping of key to error message, None for keys that loaded
        """
        outcome: Dict[str, Optional[str]] = {}
        for key in keys or self.factories:
            if key not in self.factories:
                raise KeyError(f"Unknown pipeline: {key}")
            try:
                await self.manager.acquire(key, self.factories[key])
                outcome[key] = None
            except PipelineError as e:
                logger.warning(f"Warmup of {key} pipeline failed: {e}")
                outcome[key] = str(e)
        return outcome

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.manager.get_cache_stats()

    def clear_cache(self) -> None:
        self.manager.clear_cache()

    def clear_errors(self) -> List[str]:
        return self.manager.clear_errors()

    def current_model_info(self, key: str = TRANSLATION_KEY) -> Optional[ModelInfo]:
        return self.manager.get_model_info(key)

    async def shutdown(self) -> None:
        await self.manager.shutdown()

    async def __aenter__(self) -> "TranslatorApp":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()
