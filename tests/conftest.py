from typing import Callable, List, Optional, Union

import pytest

from aiadapters.base import LLMAdapter
from tutorial_pipeline.fallback_client import ExhaustedModels, FallbackClient, ModelRoster

Reply = Union[str, Exception, Callable[[str, str], str]]


class ScriptedAdapter(LLMAdapter):
    """Plays back queued replies; an Exception in the queue is raised instead."""

    def __init__(self, replies: Optional[List[Reply]] = None) -> None:
        super().__init__(model=None)
        self.replies = list(replies or [])
        self.calls = []

    def name(self) -> str:
        return "scripted"

    def generate(self, prompt, *, model=None, temperature=None, top_p=None, label=None):
        self.calls.append({"prompt": prompt, "model": model, "label": label})
        if not self.replies:
            raise AssertionError("ScriptedAdapter ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(prompt, model)
        return reply


@pytest.fixture
def exhausted():
    return ExhaustedModels()


@pytest.fixture
def make_client(exhausted):
    def _make(replies, models=("model-a", "model-b", "model-c")):
        adapter = ScriptedAdapter(replies)
        return FallbackClient(adapter, ModelRoster(list(models), exhausted)), adapter
    return _make
