"""
Configuration settings for the translator service.
"""

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List
import yaml
import os


@dataclass
class CacheConfig:
    """Pipeline cache configuration. Durations are in seconds."""

    cache_duration: float = 30 * 60  # Idle time before a cached pipeline expires
    max_cache_size: int = 2
    model_load_timeout: float = 60.0
    error_cooldown: float = 60.0  # Minimum wait before retrying a failed key

    # Per-key load timeout overrides
    load_timeouts: Dict[str, float] = field(default_factory=lambda: {"translation": 120.0})

    def timeout_for(self, key: str) -> float:
        return self.load_timeouts.get(key, self.model_load_timeout)


def _default_translation_candidates() -> List[Dict[str, Any]]:
    return [
        {
            'name': 'facebook/nllb-200-distilled-600M',
            'src_lang': 'eng_Latn',
            'tgt_lang': 'npi_Deva',
            'description': 'Large but most accurate (~600MB) - Native Nepali support'
        },
        {
            'name': 'facebook/m2m100_418M',
            'src_lang': 'en',
            'tgt_lang': 'ne',
            'description': 'Medium size (~400MB) - Direct English to Nepali'
        },
    ]


def _default_translation_patterns() -> List[str]:
    return ['opus-mt', 'marianmt', 'nllb', 'm2m100', 'mbart', 't5', 'translation']


@dataclass
class ModelConfig:
    """Model configuration for the translation and grammar pipelines."""

    # Translation, tried in order
    translation_task: str = "translation"
    translation_candidates: List[Dict[str, Any]] = field(default_factory=_default_translation_candidates)
    translation_patterns: List[str] = field(default_factory=_default_translation_patterns)
    source_lang: Optional[str] = None  # None uses the winning candidate's default
    target_lang: Optional[str] = None

    # Grammar (sentiment heuristic)
    grammar_task: str = "sentiment-analysis"
    grammar_model: str = "nlptown/bert-base-multilingual-uncased-sentiment"
    grammar_flag_threshold: float = 0.8

    # Timeouts
    candidate_timeout: Optional[float] = 120.0
    inference_timeout: float = 30.0

    # Device settings
    use_gpu: bool = True
    device: Optional[str] = None  # Will be auto-detected if None


@dataclass
class DataConfig:
    """Static data assets."""

    fallback_dictionary: Optional[Path] = None  # Packaged dictionary if None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_to_console: bool = True
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"

    # Performance logging
    log_memory_usage: bool = True


@dataclass
class Config:
    """Main configuration class."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    data: DataConfig = field(default_factory=DataConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, config_path: Path) -> "Config":
        """Load configuration from YAML file.

        Sections missing from the file keep their defaults.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance
        """
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        config = cls()

        if 'cache' in data:
            config.cache = CacheConfig(**data['cache'])

        if 'model' in data:
            config.model = ModelConfig(**data['model'])

        if 'data' in data:
            data_section = data['data'].copy()
            if data_section.get('fallback_dictionary'):
                data_section['fallback_dictionary'] = Path(data_section['fallback_dictionary'])
            config.data = DataConfig(**data_section)

        if 'logging' in data:
            logging_data = data['logging'].copy()
            if logging_data.get('log_file'):
                logging_data['log_file'] = Path(logging_data['log_file'])
            config.logging = LoggingConfig(**logging_data)

        return config

    def to_yaml(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save YAML configuration file
        """
        def plain(section) -> Dict[str, Any]:
            return {k: str(v) if isinstance(v, Path) else v for k, v in asdict(section).items()}

        data = {
            'cache': plain(self.cache),
            'model': plain(self.model),
            'data': plain(self.data),
            'logging': plain(self.logging)
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    @classmethod
    def from_env(cls, base: Optional["Config"] = None) -> "Config":
        """Create configuration from environment variables.

        Args:
            base: Configuration to override, defaults are used if None

        Returns:
            Config instance with values from environment
        """
        config = base or cls()

        cache_duration = os.getenv('CACHE_DURATION')
        if cache_duration:
            config.cache.cache_duration = float(cache_duration)

        max_cache_size = os.getenv('MAX_CACHE_SIZE')
        if max_cache_size:
            config.cache.max_cache_size = int(max_cache_size)

        load_timeout = os.getenv('MODEL_LOAD_TIMEOUT')
        if load_timeout:
            config.cache.model_load_timeout = float(load_timeout)

        error_cooldown = os.getenv('ERROR_COOLDOWN')
        if error_cooldown:
            config.cache.error_cooldown = float(error_cooldown)

        use_gpu = os.getenv('USE_GPU')
        if use_gpu:
            config.model.use_gpu = use_gpu.lower() == 'true'

        device = os.getenv('MODEL_DEVICE')
        if device:
            config.model.device = device

        dictionary = os.getenv('FALLBACK_DICTIONARY')
        if dictionary:
            config.data.fallback_dictionary = Path(dictionary)

        log_level = os.getenv('LOG_LEVEL')
        if log_level:
            config.logging.log_level = log_level

        return config

    def validate(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.cache.cache_duration <= 0:
            raise ValueError("Cache duration must be positive")

        if self.cache.max_cache_size < 1:
            raise ValueError("Max cache size must be at least 1")

        if self.cache.model_load_timeout <= 0:
            raise ValueError("Model load timeout must be positive")

        if any(timeout <= 0 for timeout in self.cache.load_timeouts.values()):
            raise ValueError("Per-key load timeouts must be positive")

        if self.cache.error_cooldown < 0:
            raise ValueError("Error cooldown cannot be negative")

        if not self.model.translation_candidates:
            raise ValueError("At least one translation candidate is required")

        for candidate in self.model.translation_candidates:
            if not candidate.get('name'):
                raise ValueError(f"Translation candidate without a name: {candidate}")

        if self.model.candidate_timeout is not None and self.model.candidate_timeout <= 0:
            raise ValueError("Candidate timeout must be positive")

        if self.model.inference_timeout <= 0:
            raise ValueError("Inference timeout must be positive")

        if not 0 <= self.model.grammar_flag_threshold <= 1:
            raise ValueError("Grammar flag threshold must be between 0 and 1")

        if self.data.fallback_dictionary is not None and not self.data.fallback_dictionary.exists():
            raise ValueError(f"Fallback dictionary not found: {self.data.fallback_dictionary}")


# Default configuration instance
default_config = Config()
