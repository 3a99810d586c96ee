import json
import logging

import httpx
import pytest

from app.core.config import Settings
from app.services.content import (
    build_content_generator,
    generate_content,
    normalize_key_points,
    validate_quiz_questions,
)
from app.services.errors import ConfigurationMissing, ContentGenerationFailed, QuizGenerationFailed
from app.services.llm.base import LLMContentGenerator
from app.services.llm.mock_client import MockContentGenerator, key_terms
from app.services.llm.ollama_client import OllamaChatResult, OllamaClient, OllamaContentGenerator
from app.services.llm.openai_client import OpenAIContentGenerator
from app.services.llm.text import compress_transcript, extract_json, parse_bullets



def _question(i=0, **overrides):
    q = {
        "question": f"Question {i}?",
        "options": ["A", "B", "C", "D"],
        "correctAnswer": i % 4,
        "explanation": "Because.",
        "difficulty": "medium",
    }
    q.update(overrides)
    return q


def test_mock_generator_output_shape(lecture):
    gen = MockContentGenerator()

    summary = gen.generate_summary(lecture)
    assert summary
    assert len(summary.split()) <= 300

    points = gen.generate_key_points(lecture)
    assert 5 <= len(points) <= 8
    assert all(p["timestamp"] == "general" for p in points)

    questions = validate_quiz_questions(gen.generate_quiz(lecture))
    assert len(questions) == 10
    assert [q["correct_answer"] for q in questions] == [i % 4 for i in range(10)]
    assert [q["difficulty"] for q in questions].count("easy") == 3
    assert [q["difficulty"] for q in questions].count("hard") == 2


def test_mock_generator_is_deterministic(lecture):
    gen = MockContentGenerator()
    assert gen.generate_quiz(lecture) == gen.generate_quiz(lecture)


def test_key_terms_counts_repeated_long_words(lecture):
    assert key_terms(lecture)[0] == "photosynthesis"
    assert key_terms("short words only here") == []


def test_validate_quiz_rejects_wrong_question_count():
    with pytest.raises(QuizGenerationFailed):
        validate_quiz_questions([_question(i) for i in range(9)])
    with pytest.raises(QuizGenerationFailed):
        validate_quiz_questions({"questions": []})


@pytest.mark.parametrize(
    "bad",
    [
        {"options": ["A", "B", "C"]},
        {"options": ["A", "B", "C", ""]},
        {"correctAnswer": 4},
        {"correctAnswer": -1},
        {"correctAnswer": True},
        {"correctAnswer": "1"},
        {"difficulty": "extreme"},
        {"question": "  "},
    ],
)
def test_validate_quiz_rejects_malformed_question(bad):
    items = [_question(i) for i in range(10)]
    items[3] = _question(3, **bad)
    with pytest.raises(QuizGenerationFailed):
        validate_quiz_questions(items)


def test_validate_quiz_normalizes_storage_shape():
    out = validate_quiz_questions([_question(i, difficulty=None) for i in range(10)])
    assert out[0] == {
        "question": "Question 0?",
        "options": ["A", "B", "C", "D"],
        "correct_answer": 0,
        "explanation": "Because.",
        "difficulty": "medium",
    }


def test_normalize_key_points():
    items = ["First idea", {"point": "Second idea", "timestamp": "02:10"}, {"point": ""}, 42]
    items += [f"Extra {i}" for i in range(10)]
    out = normalize_key_points(items)
    assert out[0] == {"point": "First idea", "timestamp": "general"}
    assert out[1] == {"point": "Second idea", "timestamp": "02:10"}
    assert len(out) == 8


def test_generate_content_joins_all_three(lecture):
    content = generate_content(MockContentGenerator(), lecture)
    assert content.summary
    assert len(content.questions) == 10
    assert content.generated_at is not None


def test_generate_content_fails_when_any_part_fails(lecture):
    class FailingQuiz(MockContentGenerator):
        def generate_quiz(self, text):
            raise ContentGenerationFailed("Failed to generate quiz")

    with pytest.raises(ContentGenerationFailed):
        generate_content(FailingQuiz(), lecture)


class ScriptedGenerator(LLMContentGenerator):
    name = "scripted"

    def __init__(self, replies):
        super().__init__(transcript_max_chars=12000)
        self.replies = replies
        self.calls = []

    def ensure_configured(self):
        return None

    def _complete(self, system, prompt, *, temperature, max_tokens, json_mode=False):
        self.calls.append({"system": system, "prompt": prompt, "json_mode": json_mode})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_llm_generator_parses_quiz_json_with_extra_text(lecture):
    payload = {"questions": [_question(i) for i in range(10)]}
    gen = ScriptedGenerator(["Here you go:\n" + json.dumps(payload) + "\nEnjoy!"])
    questions = gen.generate_quiz(lecture)
    assert len(questions) == 10
    assert gen.calls[0]["json_mode"] is True
    assert lecture in gen.calls[0]["prompt"]


def test_llm_generator_quiz_not_json(lecture):
    gen = ScriptedGenerator(["I cannot produce a quiz for this."])
    with pytest.raises(QuizGenerationFailed):
        gen.generate_quiz(lecture)


def test_llm_generator_provider_error_is_wrapped_without_detail(lecture):
    gen = ScriptedGenerator([RuntimeError("upstream 429: secret-ish detail")])
    with pytest.raises(ContentGenerationFailed) as exc:
        gen.generate_summary(lecture)
    assert "secret-ish" not in exc.value.message


def test_llm_generator_key_points_falls_back_to_bullets(lecture):
    gen = ScriptedGenerator(["- Plants convert light to energy\n- Chlorophyll absorbs light\n* x"])
    assert gen.generate_key_points(lecture) == ["Plants convert light to energy", "Chlorophyll absorbs light"]


def test_ollama_generator_passes_options(lecture):
    class FakeOllama:
        base_url = "http://localhost:11434"

        def __init__(self):
            self.kwargs = None

        def generate(self, model, prompt, **kwargs):
            self.kwargs = kwargs
            return OllamaChatResult(text='[{"point": "Light drives it", "timestamp": "general"}]')

    fake = FakeOllama()
    gen = OllamaContentGenerator(fake, "qwen2.5:7b-instruct")
    assert gen.generate_key_points(lecture) == [{"point": "Light drives it", "timestamp": "general"}]
    assert fake.kwargs["max_tokens"] == 800
    assert fake.kwargs["json_mode"] is False


@pytest.mark.parametrize("key", [None, "", "sk-placeholder", "your-actual-key"])
def test_openai_generator_requires_real_key(key):
    with pytest.raises(ConfigurationMissing):
        OpenAIContentGenerator(key).ensure_configured()


def test_build_content_generator_providers():
    assert build_content_generator(Settings(content_provider="mock")).name == "mock"
    assert build_content_generator(Settings(content_provider="openai", use_mock_ai=True)).name == "mock"
    assert build_content_generator(Settings(content_provider="openai")).name == "openai"
    assert build_content_generator(Settings(content_provider="ollama")).name == "ollama"
    with pytest.raises(ConfigurationMissing):
        build_content_generator(Settings(content_provider="bard"))


def test_compress_transcript_bounds_length():
    long_text = " ".join(f"Sentence number {i} talks about a distinct topic here." for i in range(2000))
    out = compress_transcript(long_text, max_chars=3000)
    assert 0 < len(out) <= 3000
    assert compress_transcript("short text", max_chars=3000) == "short text"


def test_extract_json_and_bullets():
    assert extract_json('noise {"a": 1} trailing') == {"a": 1}
    with pytest.raises(ValueError):
        extract_json("")
    assert parse_bullets("1. First long point here\n2) Second long point here") == [
        "First long point here",
        "Second long point here",
    ]


def test_ollama_client_request_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"response": '  {"questions": []}  ', "done_reason": "stop"})

    client = OllamaClient("http://ollama.local:11434/", transport=httpx.MockTransport(handler))
    result = client.generate("llama3", "Make a quiz", system="You are a tutor", max_tokens=2500, json_mode=True)

    assert result.text == '{"questions": []}'
    assert result.done_reason == "stop"
    assert seen["url"] == "http://ollama.local:11434/api/generate"
    assert seen["body"] == {
        "model": "llama3",
        "prompt": "Make a quiz",
        "stream": False,
        "options": {"temperature": 0.2, "num_predict": 2500},
        "system": "You are a tutor",
        "format": "json",
    }


def test_normalize_key_points_warns_when_too_few(caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.content"):
        out = normalize_key_points(["Only one idea", {"point": "And a second"}])

    assert len(out) == 2
    assert "2 usable key points" in caplog.text


def test_normalize_key_points_enough_points_is_quiet(caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.content"):
        normalize_key_points([f"Idea {i}" for i in range(6)])
    assert caplog.text == ""
