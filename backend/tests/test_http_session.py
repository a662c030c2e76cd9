import threading

import requests

from formgen.services.docai_service import DocumentAIService
from formgen.services.model_gateway import VertexClient
from formgen.utils import http_session
from formgen.utils.http_session import ThreadLocalSession

from fakes import FakeResponse, FakeSession, FakeTokenProvider


def test_same_thread_reuses_its_session():
    sessions = ThreadLocalSession()
    assert sessions.current is sessions.current
    assert isinstance(sessions.current, requests.Session)


def test_each_thread_gets_its_own_session():
    sessions = ThreadLocalSession()
    seen = []

    def grab():
        seen.append(sessions.current)

    workers = [threading.Thread(target=grab) for _ in range(3)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    grab()

    assert len(seen) == 4
    assert len({id(session) for session in seen}) == 4


def test_post_goes_through_calling_threads_session(monkeypatch):
    fake = FakeSession(FakeResponse(200, {"ok": True}))
    monkeypatch.setattr(http_session.requests, "Session", lambda: fake)

    response = ThreadLocalSession().post("https://example.test/v1", json={"a": 1}, timeout=5)

    assert response.json() == {"ok": True}
    assert fake.calls[0]["url"] == "https://example.test/v1"


def test_shared_clients_default_to_thread_local_sessions():
    docai = DocumentAIService(token_provider=FakeTokenProvider())
    vertex = VertexClient(project_id="p", location="us-central1", token_provider=FakeTokenProvider())

    assert isinstance(docai.session, ThreadLocalSession)
    assert isinstance(vertex.session, ThreadLocalSession)


def test_injected_session_is_used_as_is():
    fake = FakeSession()
    assert DocumentAIService(token_provider=FakeTokenProvider(), session=fake).session is fake
