"""Test doubles for the HTTP, token and model collaborators."""
import json


class FakeTokenProvider:
    project = "demo-project"

    def get_token(self):
        return "test-token"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """Records POSTs and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def model_response(text, thought=None):
    """Build a generateContent response with one candidate."""
    parts = []
    if thought:
        parts.append({"text": thought, "thought": True})
    parts.append({"text": text})
    return {"candidates": [{"content": {"role": "model", "parts": parts}}]}


class ScriptedClient:
    """Vertex client double: per model, an exception to raise or a response to return."""

    def __init__(self, script):
        self.script = script
        self.calls = []
        self.requests = []

    def generate_content(self, model, request):
        self.calls.append(model)
        self.requests.append(request)
        outcome = self.script[model]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
