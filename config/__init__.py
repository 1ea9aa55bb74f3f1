"""
Service configuration.
"""

from .settings import Config, CacheConfig, ModelConfig, DataConfig, LoggingConfig, default_config

__all__ = [
    'Config',
    'CacheConfig',
    'ModelConfig',
    'DataConfig',
    'LoggingConfig',
    'default_config'
]
