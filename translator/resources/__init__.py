"""
Pipeline caching and loading layer.
"""

from .cache import PipelineCache, CacheEntry, EntryState
from .pipeline_manager import PipelineManager
from .factories import (
    Candidate,
    CandidateFactory,
    transformers_builder,
    build_translation_factory,
    build_grammar_factory,
    is_resource_exhaustion
)

__all__ = [
    'PipelineCache',
    'CacheEntry',
    'EntryState',
    'PipelineManager',
    'Candidate',
    'CandidateFactory',
    'transformers_builder',
    'build_translation_factory',
    'build_grammar_factory',
    'is_resource_exhaustion'
]
