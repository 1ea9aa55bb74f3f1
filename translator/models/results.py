"""
Typed result structures returned by pipeline handles and services.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional


@dataclass
class TranslationResult:
    """Normalized translation output."""
    translation_text: str
    source_lang: Optional[str] = None
    target_lang: Optional[str] = None
    model: Optional[str] = None
    fallback_used: bool = False
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class SentimentResult:
    """Normalized text-classification output."""
    label: str
    score: float


@dataclass
class GrammarResult:
    """Outcome of the sentiment based grammar check."""
    status: str
    original: str
    confidence: float = 0.0
    label: Optional[str] = None
    fallback_used: bool = False
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class ModelInfo:
    """Descriptive metadata about the candidate that produced a cached handle."""
    name: str
    task: str
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'task': self.task,
            'description': self.description,
            **self.parameters,
        }


@dataclass
class LoadedPipeline:
    """A built handle paired with metadata about the candidate that produced it."""
    handle: Any
    model_info: Optional[ModelInfo] = None
