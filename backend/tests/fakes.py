"""Fake OpenAI-compatible client and error factories for generation tests."""
import json
from types import SimpleNamespace

import httpx
import openai

API_URL = "https://models.example.test/inference/chat/completions"


def completion(content):
    """A chat completion whose first choice carries content."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def tasks_completion(tasks):
    return completion(json.dumps({"tasks": tasks}))


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", API_URL))


def auth_error():
    return openai.AuthenticationError("Unauthorized", response=_response(401), body=None)


def server_error():
    return openai.InternalServerError("Server error", response=_response(500), body=None)


def timeout_error():
    return openai.APITimeoutError(request=httpx.Request("POST", API_URL))


class FakeCompletions:
    """Returns (or raises) the queued items in order and records every call."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeOpenAI:
    def __init__(self, *responses):
        self.completions = FakeCompletions(responses)
        self.chat = SimpleNamespace(completions=self.completions)

    @property
    def calls(self):
        return self.completions.calls


async def no_sleep(_seconds):
    return None
