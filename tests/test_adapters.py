import os

import pytest

from aiadapters.base import (
    LLMAuthError,
    LLMConnectionError,
    LLMQuotaError,
    LLMUnknownError,
    QuotaSignals,
    status_code_of,
)
from aiadapters.dummy_adapter import DummyAdapter
from aiadapters.factory import create_llm_adapter, load_env_file, resolve_model_roster
from tutorial_pipeline.errors import ConfigurationError
from tutorial_pipeline.fallback_client import ExhaustedModels, create_fallback_client
from tutorial_pipeline.prompt_builder import build_prompt


class StatusError(Exception):
    def __init__(self, message, status_code=None, code=None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code


def test_status_code_of():
    assert status_code_of(StatusError("x", status_code=429)) == 429
    assert status_code_of(StatusError("x", code=503)) == 503
    assert status_code_of(RuntimeError("x")) is None


def test_quota_signals_status_and_phrases():
    signals = QuotaSignals()
    assert signals.matches(StatusError("slow down", status_code=429))
    assert signals.matches(StatusError("overloaded", code=503))
    assert signals.matches(RuntimeError("403 Resource exhausted (e.g. check quota)."))
    assert not signals.matches(RuntimeError("400 invalid argument"))


def test_quota_signals_are_configurable():
    signals = QuotaSignals.from_config({"status_codes": [500], "phrases": ["overloaded"]})
    assert signals.matches(StatusError("boom", status_code=500))
    assert signals.matches(RuntimeError("Model is Overloaded"))
    assert not signals.matches(StatusError("slow down", status_code=429))


def test_classify_error_order():
    adapter = DummyAdapter()
    assert isinstance(adapter.classify_error(RuntimeError("429 Too Many Requests")), LLMQuotaError)
    assert isinstance(adapter.classify_error(RuntimeError("Deadline exceeded")), LLMConnectionError)
    assert isinstance(adapter.classify_error(RuntimeError("API key not valid")), LLMAuthError)
    assert isinstance(adapter.classify_error(RuntimeError("something odd")), LLMUnknownError)
    quota = adapter.classify_error(StatusError("unavailable", status_code=503))
    assert isinstance(quota, LLMQuotaError) and quota.status_code == 503


def test_dummy_adapter_follows_parts():
    adapter = DummyAdapter(model="dummy-1")
    first = adapter.generate(build_prompt("Hello world.", 0, 2), model="dummy-1")
    last = adapter.generate(build_prompt("Goodbye world.", 1, 2), model="dummy-1")
    assert first.startswith("# [DUMMY:dummy-1] Tutorial")
    assert "## Summary" not in first
    assert "## 2. Part 2" in last and "## Summary" in last
    assert "Goodbye world." in last


class FakeGenerativeModel:
    def __init__(self, name, reply=None, error=None):
        self.name = name
        self.reply = reply
        self.error = error

    def generate_content(self, prompt, generation_config=None):
        if self.error:
            raise self.error
        return type("Resp", (), {"text": f"{self.name}:{self.reply}"})()


class FakeGenai:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error

    def GenerativeModel(self, name):
        return FakeGenerativeModel(name, self.reply, self.error)


def test_gemini_adapter(monkeypatch):
    from aiadapters.gemini_adapter import GeminiAdapter

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    adapter = GeminiAdapter(model="gemini-2.5-flash")
    adapter._genai = FakeGenai(reply="ok")
    assert adapter.generate("p", model="gemini-2.0-flash") == "gemini-2.0-flash:ok"

    adapter._genai = FakeGenai(error=StatusError("Resource has been exhausted", code=429))
    with pytest.raises(LLMQuotaError):
        adapter.generate("p")
    adapter._genai = FakeGenai(error=RuntimeError("400 Request contains an invalid argument"))
    with pytest.raises(LLMUnknownError):
        adapter.generate("p")


def test_gemini_adapter_requires_key(monkeypatch):
    from aiadapters.gemini_adapter import GeminiAdapter

    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(LLMAuthError):
        GeminiAdapter()


def test_openai_adapter(monkeypatch):
    from aiadapters.openai_adapter import OpenAIAdapter

    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    adapter = OpenAIAdapter(model="gpt-4.1-mini", temperature=0.2)
    created = []

    class Responses:
        def create(self, **params):
            created.append(params)
            if params["model"] == "busy":
                raise StatusError("Error code: 429", status_code=429)
            return type("Resp", (), {"output_text": "hello"})()

    adapter._client = type("Client", (), {"responses": Responses()})()
    assert adapter.generate("prompt") == "hello"
    assert created[0]["model"] == "gpt-4.1-mini"
    assert created[0]["temperature"] == 0.2
    assert created[0]["input"] == [{"role": "user", "content": "prompt"}]
    assert "top_p" not in created[0]
    with pytest.raises(LLMQuotaError):
        adapter.generate("prompt", model="busy")


def test_resolve_model_roster():
    cfg = {"llm": {"provider": "gemini", "gemini": {"models": ["a", "b", "a", " "]}, "openai": {"model": "gpt"}}}
    assert resolve_model_roster(cfg) == ["a", "b"]
    assert resolve_model_roster(cfg, "openai") == ["gpt"]
    assert resolve_model_roster(cfg, "dummy") == []


def test_factory_dummy(tmp_path):
    cfg = {"llm": {"provider": "dummy", "dummy": {"models": ["d1", "d2"]}}}
    adapter = create_llm_adapter(cfg, provider_override=None, project_root=tmp_path)
    assert adapter.name() == "dummy"
    assert adapter.model == "d1"
    with pytest.raises(ValueError):
        create_llm_adapter(cfg, provider_override="nope", project_root=tmp_path)


def test_load_env_file_keeps_existing(tmp_path, monkeypatch):
    monkeypatch.setenv("TP_EXISTING", "shell")
    monkeypatch.delenv("TP_NEW", raising=False)
    (tmp_path / ".env").write_text("# comment\nexport TP_NEW='from-file'\nTP_EXISTING=file\nbroken line\n")
    assert load_env_file(tmp_path)
    assert os.environ["TP_NEW"] == "from-file"
    assert os.environ["TP_EXISTING"] == "shell"
    monkeypatch.delenv("TP_NEW")


def test_missing_credentials_fail_fast(tmp_path, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    cfg = {"llm": {"provider": "gemini", "gemini": {"models": ["gemini-2.5-flash"]}}}
    with pytest.raises(ConfigurationError):
        create_fallback_client(cfg, exhausted=ExhaustedModels(), project_root=tmp_path)


def test_empty_roster_fails_fast(tmp_path):
    cfg = {"llm": {"provider": "dummy"}}
    with pytest.raises(ConfigurationError):
        create_fallback_client(cfg, exhausted=ExhaustedModels(), project_root=tmp_path)
