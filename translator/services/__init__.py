"""
Application services built on the pipeline manager.
"""

from .translation import TranslationService, FallbackDictionary, TRANSLATION_KEY
from .grammar import GrammarService, GRAMMAR_KEY

__all__ = [
    'TranslationService',
    'FallbackDictionary',
    'GrammarService',
    'TRANSLATION_KEY',
    'GRAMMAR_KEY'
]
