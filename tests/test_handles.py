"""
Test cases for pipeline handles and output normalization.
"""

import pytest

from translator.models.errors import InferenceError
from translator.pipelines.handles import (
    SentimentHandle,
    TranslationHandle,
    handle_type_for,
    normalize_sentiment,
    normalize_translation
)

from fakes import FakeBackend


class TestNormalization:
    def test_translation_output(self):
        assert normalize_translation([{'translation_text': "नमस्ते"}]) == "नमस्ते"

    @pytest.mark.parametrize("output", [
        [],
        "नमस्ते",
        [{'generated_text': "नमस्ते"}],
        [{'translation_text': None}],
        {'translation_text': "नमस्ते"},
    ])
    def test_unexpected_translation_output(self, output):
        with pytest.raises(InferenceError, match="Unexpected translation output"):
            normalize_translation(output)

    def test_sentiment_output(self):
        result = normalize_sentiment([{'label': '5 stars', 'score': 0.91}])
        assert result.label == '5 stars'
        assert result.score == pytest.approx(0.91)

    def test_unexpected_sentiment_output(self):
        with pytest.raises(InferenceError):
            normalize_sentiment([{'label': 'POSITIVE'}])


class TestTranslationHandle:
    @pytest.mark.asyncio
    async def test_uses_candidate_languages_by_default(self):
        backend = FakeBackend(output=[{'translation_text': "नमस्ते"}])
        handle = TranslationHandle(backend, "facebook/nllb-200-distilled-600M",
                                   {'src_lang': 'eng_Latn', 'tgt_lang': 'npi_Deva'})

        result = await handle("hello")

        assert result.translation_text == "नमस्ते"
        assert result.model == "facebook/nllb-200-distilled-600M"
        assert result.source_lang == 'eng_Latn'
        assert backend.calls == [{'text': "hello", 'src_lang': 'eng_Latn', 'tgt_lang': 'npi_Deva'}]

    @pytest.mark.asyncio
    async def test_explicit_languages_win(self):
        backend = FakeBackend(output=[{'translation_text': "x"}])
        handle = TranslationHandle(backend, "m", {'src_lang': 'eng_Latn', 'tgt_lang': 'npi_Deva'})

        result = await handle("hello", src_lang='en', tgt_lang='ne')

        assert result.target_lang == 'ne'
        assert backend.calls[0]['src_lang'] == 'en'

    @pytest.mark.asyncio
    async def test_no_languages_passes_no_options(self):
        backend = FakeBackend(output=[{'translation_text': "x"}])
        handle = TranslationHandle(backend, "Helsinki-NLP/opus-mt-en-hi")

        await handle("hello")

        assert backend.calls == [{'text': "hello"}]

    @pytest.mark.asyncio
    async def test_released_handle_refuses_calls(self):
        handle = TranslationHandle(FakeBackend(output=[{'translation_text': "x"}]), "m")
        handle.close()

        assert handle.released
        with pytest.raises(InferenceError, match="released"):
            await handle("hello")

    @pytest.mark.asyncio
    async def test_backend_errors_propagate(self):
        handle = TranslationHandle(FakeBackend(error=RuntimeError("CUDA out of memory")), "m")

        with pytest.raises(RuntimeError, match="out of memory"):
            await handle("hello")


class TestSentimentHandle:
    @pytest.mark.asyncio
    async def test_returns_sentiment(self):
        handle = SentimentHandle(FakeBackend(output=[{'label': 'NEGATIVE', 'score': 0.7}]), "m")

        result = await handle("this are wrong")

        assert result.label == 'NEGATIVE'


class TestHandleTypes:
    @pytest.mark.parametrize("task, expected", [
        ("translation", TranslationHandle),
        ("translation_en_to_de", TranslationHandle),
        ("sentiment-analysis", SentimentHandle),
        ("text-classification", SentimentHandle),
    ])
    def test_known_tasks(self, task, expected):
        assert handle_type_for(task) is expected

    def test_unknown_task(self):
        with pytest.raises(ValueError, match="No pipeline handle"):
            handle_type_for("automatic-speech-recognition")
