"""
Error types and typed result models.
"""

from .errors import (
    PipelineError,
    LoadError,
    LoadTimeoutError,
    CooldownError,
    InferenceError,
    ServiceError,
    CandidateFailure
)
from .results import TranslationResult, SentimentResult, GrammarResult, ModelInfo, LoadedPipeline

__all__ = [
    'PipelineError',
    'LoadError',
    'LoadTimeoutError',
    'CooldownError',
    'InferenceError',
    'ServiceError',
    'CandidateFailure',
    'TranslationResult',
    'SentimentResult',
    'GrammarResult',
    'ModelInfo',
    'LoadedPipeline'
]
