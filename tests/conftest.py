"""
Shared fixtures for the translator tests.
"""

import pytest

from config.settings import CacheConfig
from translator.resources.pipeline_manager import PipelineManager

from fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_config():
    return CacheConfig(
        cache_duration=30 * 60,
        max_cache_size=2,
        model_load_timeout=5.0,
        error_cooldown=60.0,
        load_timeouts={}
    )


@pytest.fixture
def manager(cache_config, clock):
    return PipelineManager(cache_config, clock=clock)
