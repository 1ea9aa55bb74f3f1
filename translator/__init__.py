"""
English to Nepali translation service.

Key components:
- PipelineManager: caches pipeline handles with single-flight loading,
  TTL expiry, error cooldown and size-bounded eviction
- CandidateFactory: loads the first backend model that works
- TranslationService / GrammarService: application actions
- TranslatorApp: composition root owning the manager's lifecycle
"""

from .app import TranslatorApp
from .models.errors import (
    PipelineError,
    LoadError,
    LoadTimeoutError,
    CooldownError,
    InferenceError,
    ServiceError
)
from .resources.pipeline_manager import PipelineManager
from .resources.factories import Candidate, CandidateFactory

__version__ = "1.0.0"

__all__ = [
    'TranslatorApp',
    'PipelineManager',
    'Candidate',
    'CandidateFactory',
    'PipelineError',
    'LoadError',
    'LoadTimeoutError',
    'CooldownError',
    'InferenceError',
    'ServiceError'
]
