"""
English to Nepali translation service with a dictionary fallback.
"""

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional

from ..models.errors import CooldownError, LoadError, LoadTimeoutError, ServiceError
from ..models.results import TranslationResult
from ..resources.factories import CandidateFactory
from ..resources.pipeline_manager import PipelineManager

logger = logging.getLogger(__name__)

TRANSLATION_KEY = "translation"

DEFAULT_DICTIONARY_PATH = Path(__file__).resolve().parent.parent / "data" / "fallback_dictionary.json"

TIMEOUT_MESSAGE = (
    "Translation timed out. The model is still loading or the text is too long. "
    "Please try again in a few moments."
)
MEMORY_MESSAGE = (
    "Translation failed due to memory constraints. "
    "Please try with shorter text or try again later."
)
COOLDOWN_MESSAGE = "Translation service is temporarily unavailable. Please wait a moment and try again."
FALLBACK_NOTE = "Translation models unavailable. Using basic dictionary translation."


def _is_memory_error(error: BaseException) -> bool:
    message = str(error)
    return isinstance(error, MemoryError) or 'memory' in message or 'ENOMEM' in message


class FallbackDictionary:
    """Word-by-word English to Nepali lookup table."""

    PUNCTUATION = re.compile(r"[.,!?;:]")

    def __init__(self, entries: Dict[str, str]):
        self._entries = {word.lower(): translation for word, translation in entries.items()}

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "FallbackDictionary":
        """Load the dictionary from a JSON object file.

        Args:
            path: Dictionary file, the packaged one if None
        """
        path = path or DEFAULT_DICTIONARY_PATH
        with open(path, 'r', encoding='utf-8') as f:
            entries = json.load(f)

        if not isinstance(entries, dict):
            raise ValueError(f"Fallback dictionary must be a JSON object: {path}")

        logger.debug(f"Loaded {len(entries)} fallback translations from {path}")
        return cls(entries)

    def translate(self, text: str) -> str:
        """Translate known words, leaving unknown ones as they are (lower-cased)."""
        words = text.lower().split()
        return ' '.join(self._entries.get(self.PUNCTUATION.sub('', word), word) for word in words)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, word: str) -> bool:
        return word.lower() in self._entries


class TranslationService:
    """Translates text through the cached translation pipeline."""

    def __init__(self,
                 manager: PipelineManager,
                 factory: CandidateFactory,
                 dictionary: FallbackDictionary,
                 inference_timeout: float = 30.0,
                 source_lang: Optional[str] = None,
                 target_lang: Optional[str] = None):
        self.manager = manager
        self.factory = factory
        self.dictionary = dictionary
        self.inference_timeout = inference_timeout
        self.source_lang = source_lang
        self.target_lang = target_lang

    async def translate(self,
                        text: str,
                        source_lang: Optional[str] = None,
                        target_lang: Optional[str] = None,
                        retry: bool = False) -> TranslationResult:
        """Translate text, falling back to the dictionary when no model loads.

        Args:
            text: Text to translate
            source_lang: Source language code, the model's default if None
            target_lang: Target language code, the model's default if None
            retry: Clear recorded load errors first (user-initiated retry)

        Returns:
            Translation result, with ``fallback_used`` set for dictionary output

        Raises:
            ValueError: If text is empty
            ServiceError: If translation failed and no fallback applies
        """
        if not text or not text.strip():
            raise ValueError("Text to translate must not be empty")

        source_lang = source_lang or self.source_lang
        target_lang = target_lang or self.target_lang

        if retry:
            cleared = self.manager.clear_errors()
            if cleared:
                logger.info(f"Retrying after clearing errors for: {', '.join(cleared)}")

        logger.info(f"Translating {len(text)} characters")

        try:
            handle = await self.manager.acquire(TRANSLATION_KEY, self.factory)
            result = await asyncio.wait_for(
                handle(text, src_lang=source_lang, tgt_lang=target_lang),
                timeout=self.inference_timeout
            )
        except CooldownError as e:
            logger.warning(f"Translation refused during cooldown: {e}")
            raise ServiceError(COOLDOWN_MESSAGE) from e
        except LoadTimeoutError as e:
            logger.error(f"Translation model load timed out: {e}")
            raise ServiceError(TIMEOUT_MESSAGE) from e
        except LoadError as e:
            logger.warning(f"Using fallback translation service: {e}")
            return TranslationResult(
                translation_text=self.dictionary.translate(text),
                source_lang=source_lang,
                target_lang=target_lang,
                fallback_used=True,
                note=FALLBACK_NOTE
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Translation timed out after {self.inference_timeout:g}s")
            raise ServiceError(TIMEOUT_MESSAGE) from e
        except Exception as e:
            logger.error(f"Translation failed: {e}")
            if _is_memory_error(e):
                raise ServiceError(MEMORY_MESSAGE) from e
            raise ServiceError(f"Translation failed: {e}") from e

        logger.info("Translation completed successfully")
        return result
