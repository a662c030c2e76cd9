"""
Per-thread requests sessions for the shared Google API clients.
"""
import logging
import threading

import requests

logger = logging.getLogger(__name__)


class ThreadLocalSession:
    """
    Session-like object that keeps one requests.Session per thread.

    The Document AI and Vertex clients are process-wide singletons called from
    the server's worker threads, and requests.Session is not thread-safe.
    """

    def __init__(self):
        self._local = threading.local()

    @property
    def current(self) -> requests.Session:
        """The calling thread's session, created on first use."""
        session = getattr(self._local, 'session', None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            logger.debug(f"Opened HTTP session for thread {threading.current_thread().name}")
        return session

    def post(self, url: str, **kwargs) -> requests.Response:
        return self.current.post(url, **kwargs)
