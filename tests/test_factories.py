"""
Test cases for candidate-cascading pipeline factories.
"""

import asyncio
import sys
from types import SimpleNamespace

import pytest

from config.settings import ModelConfig
from translator.models.errors import LoadError
from translator.pipelines.handles import SentimentHandle, TranslationHandle
from translator.resources.factories import (
    Candidate,
    CandidateFactory,
    build_grammar_factory,
    build_translation_factory,
    is_resource_exhaustion,
    transformers_builder
)

from fakes import FakeHandle


class ScriptedBuilder:
    """Builder returning or raising per candidate name."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.attempted = []

    async def __call__(self, candidate):
        self.attempted.append(candidate.name)
        outcome = self.outcomes[candidate.name]
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome == "hang":
            await asyncio.Event().wait()
        return outcome


def _candidates(*names):
    return [Candidate(name=name, task="translation", description=f"{name} model") for name in names]


class TestCandidate:
    def test_from_dict_collects_parameters(self):
        candidate = Candidate.from_dict(
            {'name': 'facebook/m2m100_418M', 'src_lang': 'en', 'tgt_lang': 'ne',
             'description': 'M2M-100'},
            task="translation"
        )

        assert candidate.name == 'facebook/m2m100_418M'
        assert candidate.task == "translation"
        assert candidate.description == 'M2M-100'
        assert candidate.parameters == {'src_lang': 'en', 'tgt_lang': 'ne'}

    def test_model_info_copies_candidate(self):
        candidate = Candidate(name="m", task="translation", parameters={'src_lang': 'en'})
        info = candidate.to_model_info()

        assert info.name == "m"
        assert info.parameters == {'src_lang': 'en'}
        assert info.to_dict()['task'] == "translation"


class TestResourceExhaustion:
    @pytest.mark.parametrize("error", [
        MemoryError(),
        TimeoutError("slow"),
        RuntimeError("CUDA out of memory"),
        RuntimeError("Operation aborted"),
        OSError("ENOMEM: cannot allocate"),
        RuntimeError("Pipeline creation timeout for x"),
    ])
    def test_recognized(self, error):
        assert is_resource_exhaustion(error)

    def test_other_errors(self):
        assert not is_resource_exhaustion(ValueError("unknown model identifier"))


class TestCandidateFactory:
    @pytest.mark.asyncio
    async def test_falls_through_to_next_candidate(self):
        handle = FakeHandle("b")
        builder = ScriptedBuilder({'a': RuntimeError("timeout"), 'b': handle})
        factory = CandidateFactory("translation", _candidates("a", "b"), builder)

        result = await factory()

        assert result.handle is handle
        assert builder.attempted == ["a", "b"]
        assert result.model_info.name == "b"
        assert factory.winner.name == "b"
        assert factory.model_info.name == "b"
        assert len(factory.failures) == 1
        assert factory.failures[0].candidate == "a"
        assert factory.failures[0].resource_exhaustion

    @pytest.mark.asyncio
    async def test_first_success_stops_the_cascade(self):
        builder = ScriptedBuilder({'a': FakeHandle("a"), 'b': FakeHandle("b")})
        factory = CandidateFactory("translation", _candidates("a", "b"), builder)

        await factory()

        assert builder.attempted == ["a"]
        assert factory.failures == []

    @pytest.mark.asyncio
    async def test_all_failures_raise_with_last_error(self):
        builder = ScriptedBuilder({'a': RuntimeError("first"), 'b': ValueError("second")})
        factory = CandidateFactory("translation", _candidates("a", "b"), builder)

        with pytest.raises(LoadError, match="Last error: second") as exc_info:
            await factory()

        assert exc_info.value.key == "translation"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert factory.winner is None
        assert factory.model_info is None
        assert [failure.error_type for failure in factory.failures] == ["RuntimeError", "ValueError"]

    @pytest.mark.asyncio
    async def test_disallowed_candidates_are_skipped(self):
        builder = ScriptedBuilder({'Xenova/distilbert-sst2': FakeHandle(), 'facebook/nllb-200': FakeHandle()})
        candidates = _candidates("Xenova/distilbert-sst2", "facebook/nllb-200")
        factory = CandidateFactory("translation", candidates, builder, allowed_patterns=[r"nllb", r"m2m"])

        await factory()

        assert builder.attempted == ["facebook/nllb-200"]
        assert factory.winner.name == "facebook/nllb-200"

    @pytest.mark.asyncio
    async def test_no_allowed_candidate(self):
        builder = ScriptedBuilder({'bert': FakeHandle()})
        factory = CandidateFactory("translation", _candidates("bert"), builder, allowed_patterns=[r"nllb"])

        with pytest.raises(LoadError, match="No candidate matched"):
            await factory()

        assert builder.attempted == []

    @pytest.mark.asyncio
    async def test_candidate_timeout_moves_on(self):
        handle = FakeHandle("b")
        builder = ScriptedBuilder({'a': "hang", 'b': handle})
        factory = CandidateFactory("translation", _candidates("a", "b"), builder, candidate_timeout=0.05)

        result = await factory()

        assert result.handle is handle
        assert "Pipeline creation timeout for a" in factory.failures[0].message
        assert factory.failures[0].resource_exhaustion

    @pytest.mark.asyncio
    async def test_state_resets_between_calls(self):
        builder = ScriptedBuilder({'a': RuntimeError("boom"), 'b': FakeHandle()})
        factory = CandidateFactory("translation", _candidates("a", "b"), builder)

        await factory()
        builder.outcomes['b'] = RuntimeError("gone")
        with pytest.raises(LoadError):
            await factory()

        assert factory.winner is None
        assert len(factory.failures) == 2

    @pytest.mark.asyncio
    async def test_concurrent_calls_keep_their_own_winner(self):
        gate = asyncio.Event()
        attempts = {'a': 0}

        async def builder(candidate):
            if candidate.name == 'a':
                attempts['a'] += 1
                if attempts['a'] == 1:
                    await gate.wait()
                    raise RuntimeError("timeout")
            return FakeHandle(candidate.name)

        factory = CandidateFactory("translation", _candidates("a", "b"), builder)

        slow_call = asyncio.create_task(factory())
        while attempts['a'] == 0:
            await asyncio.sleep(0)
        fast = await factory()
        gate.set()
        slow = await slow_call

        assert fast.model_info.name == "a"
        assert fast.handle.name == "a"
        assert slow.model_info.name == "b"
        assert slow.handle.name == "b"
        assert factory.winner.name == "b"
        assert [failure.candidate for failure in factory.failures] == ["a"]


class TestBuilders:
    def test_translation_factory_from_config(self):
        config = ModelConfig()
        factory = build_translation_factory(config, ScriptedBuilder({}))

        assert factory.key == "translation"
        assert [c.name for c in factory.candidates] == [
            data['name'] for data in config.translation_candidates
        ]
        assert all(factory.accepts(c) for c in factory.candidates)
        assert not factory.accepts(Candidate(name="distilbert-base-uncased", task="translation"))
        assert factory.candidate_timeout == config.candidate_timeout

    def test_grammar_factory_from_config(self):
        config = ModelConfig()
        factory = build_grammar_factory(config, ScriptedBuilder({}))

        assert factory.key == "grammar"
        assert len(factory.candidates) == 1
        assert factory.candidates[0].name == config.grammar_model
        assert factory.candidates[0].task == "sentiment-analysis"

    @pytest.mark.asyncio
    async def test_transformers_builder_wraps_backend(self, monkeypatch):
        created = []

        def fake_pipeline(task, model=None, device=None):
            created.append((task, model, device))
            return object()

        monkeypatch.setitem(sys.modules, 'transformers', SimpleNamespace(pipeline=fake_pipeline))
        build = transformers_builder("cpu")

        translation = await build(Candidate(name="facebook/nllb", task="translation",
                                            parameters={'src_lang': 'eng_Latn'}))
        sentiment = await build(Candidate(name="nlptown/bert", task="sentiment-analysis"))

        assert isinstance(translation, TranslationHandle)
        assert translation.parameters == {'src_lang': 'eng_Latn'}
        assert isinstance(sentiment, SentimentHandle)
        assert created == [
            ("translation", "facebook/nllb", "cpu"),
            ("sentiment-analysis", "nlptown/bert", "cpu"),
        ]
