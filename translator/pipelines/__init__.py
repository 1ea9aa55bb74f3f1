"""
Typed pipeline handles.
"""

from .handles import (
    PipelineHandle,
    TranslationHandle,
    SentimentHandle,
    handle_type_for,
    normalize_translation,
    normalize_sentiment
)

__all__ = [
    'PipelineHandle',
    'TranslationHandle',
    'SentimentHandle',
    'handle_type_for',
    'normalize_translation',
    'normalize_sentiment'
]
