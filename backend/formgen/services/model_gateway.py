"""
Vertex AI Gemini gateway
========================

Calls Gemini through the Vertex AI REST API and walks an ordered list of
candidate models until one of them exists in the configured project/region.

Fallback rules:
---------------
- Candidates are de-duplicated and empty entries dropped, order preserved
- A "model not found" class error moves on to the next candidate
- Any other error is raised immediately (no retry within a candidate)
- Exhausting the list raises NoModelAvailable

Model output is untrusted text. Prompts ask for base64-encoded code fields
so the JSON survives embedded quotes and newlines, but the parser still
carries three tiers: direct parse, first balanced object, newline repair.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import List, Dict, Any, Optional

import requests

from formgen.config import Config
from formgen.errors import (
    InvalidModelJson,
    ModelCallError,
    NoModelAvailable,
    UpstreamTimeout,
)
from formgen.utils.google_auth import GoogleTokenProvider, get_token_provider
from formgen.utils.http_session import ThreadLocalSession

logger = logging.getLogger(__name__)

NOT_FOUND_MARKERS = ('404', 'NOT_FOUND', 'was not found', 'Publisher Model')


@dataclass
class GenerationResult:
    """Text returned by the first model that answered."""
    result: str
    model_used: str
    raw_response: Dict[str, Any] = field(default_factory=dict)


def text_part(text: str) -> Dict[str, Any]:
    """Build a text content part."""
    return {'text': text}


def inline_part(mime_type: str, data: bytes) -> Dict[str, Any]:
    """Build an inline binary content part (PDF or image)."""
    return {
        'inlineData': {
            'mimeType': mime_type,
            'data': base64.b64encode(data).decode('ascii')
        }
    }


def build_request(parts: List[Dict[str, Any]], json_response: bool = True) -> Dict[str, Any]:
    """
    Assemble a generateContent request body from content parts.

    Args:
        parts: Ordered content parts
        json_response: Ask the model for application/json output

    Returns:
        Request body dictionary
    """
    request: Dict[str, Any] = {
        'contents': [{'role': 'user', 'parts': list(parts)}]
    }
    if json_response:
        request['generationConfig'] = {'responseMimeType': 'application/json'}
    return request


def is_model_not_found(error: BaseException) -> bool:
    """Check whether an error means the model does not exist for this project/region."""
    message = str(error)
    return any(marker in message for marker in NOT_FOUND_MARKERS)


class VertexClient:
    """Thin REST client for Vertex AI generateContent."""

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: Optional[str] = None,
        token_provider: Optional[GoogleTokenProvider] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None
    ):
        self.project_id = project_id or Config.PROJECT_ID
        self.location = location or Config.VERTEX_LOCATION
        self.token_provider = token_provider or get_token_provider()
        self.session = session or ThreadLocalSession()
        self.timeout = timeout or Config.HTTP_TIMEOUT

    def endpoint(self, model: str) -> str:
        """Build the generateContent URL for a publisher model."""
        host = (
            'aiplatform.googleapis.com' if self.location == 'global'
            else f"{self.location}-aiplatform.googleapis.com"
        )
        return (
            f"https://{host}/v1/projects/{self.project_id}/locations/{self.location}"
            f"/publishers/google/models/{model}:generateContent"
        )

    def generate_content(self, model: str, request: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST one generateContent request.

        Raises:
            ModelCallError: On non-2xx status or a non-JSON body
            UpstreamTimeout: If the request times out
        """
        if not self.project_id:
            self.project_id = self.token_provider.project
        token = self.token_provider.get_token()

        try:
            response = self.session.post(
                self.endpoint(model),
                headers={
                    'Authorization': f"Bearer {token}",
                    'Content-Type': 'application/json'
                },
                json=request,
                timeout=self.timeout
            )
        except requests.Timeout as e:
            raise UpstreamTimeout(f"Vertex AI call to {model} timed out after {self.timeout}s") from e

        if not response.ok:
            raise ModelCallError(response.status_code, response.text, model=model)
        try:
            return response.json()
        except ValueError as e:
            raise ModelCallError(response.status_code, f"malformed response, not JSON ({e})", model=model) from e


_vertex_client: Optional[VertexClient] = None
_vertex_client_lock = Lock()


def get_vertex_client() -> VertexClient:
    """Get or create the process-wide Vertex client."""
    global _vertex_client

    with _vertex_client_lock:
        if _vertex_client is None:
            _vertex_client = VertexClient()
            logger.info(f"Initialized Vertex AI client (location={_vertex_client.location})")
    return _vertex_client


class ModelGateway:
    """
    Candidate-fallback front for the Gemini models.

    Example usage:

        gateway = ModelGateway()
        request = build_request([text_part(prompt), inline_part('application/pdf', pdf_bytes)])
        generation = gateway.generate('pdf-to-form', Config.vertex_candidates(), request)
        data = parse_model_json(generation.result)
    """

    def __init__(self, client: Optional[VertexClient] = None):
        """
        Initialize the gateway.

        Args:
            client: Optional client exposing generate_content(model, request).
                Defaults to the shared Vertex client, created on first use.
        """
        self._client = client

    @property
    def client(self) -> VertexClient:
        if self._client is None:
            self._client = get_vertex_client()
        return self._client

    @staticmethod
    def dedupe_candidates(candidates: List[Optional[str]]) -> List[str]:
        """Drop empty entries and repeats, keeping first-seen order."""
        seen = set()
        ordered = []
        for candidate in candidates:
            name = (candidate or '').strip()
            if not name or name in seen:
                continue
            seen.add(name)
            ordered.append(name)
        return ordered

    def generate(
        self,
        purpose: str,
        candidates: List[Optional[str]],
        request: Dict[str, Any]
    ) -> GenerationResult:
        """
        Send the request to the first candidate model that exists.

        Args:
            purpose: Short label used in logs and errors
            candidates: Ordered model ids
            request: generateContent request body

        Returns:
            GenerationResult with the response text and the model that produced it

        Raises:
            NoModelAvailable: If every candidate is a "not found" class failure
        """
        last_error: Optional[BaseException] = None

        for model in self.dedupe_candidates(candidates):
            logger.info(f"[{purpose}] trying model {model}")
            try:
                response = self.client.generate_content(model, request)
            except Exception as e:
                if is_model_not_found(e):
                    logger.warning(f"[{purpose}] model {model} not available: {e}")
                    last_error = e
                    continue
                raise

            logger.info(f"[{purpose}] model used: {model}")
            return GenerationResult(
                result=self.response_text(response),
                model_used=model,
                raw_response=response
            )

        raise NoModelAvailable(purpose, last_error)

    @staticmethod
    def response_text(response: Dict[str, Any]) -> str:
        """Join the non-thought text parts of the first candidate."""
        candidates = (response or {}).get('candidates') or []
        if not candidates:
            return ''
        parts = (candidates[0].get('content') or {}).get('parts') or []
        return ''.join(
            part.get('text', '') for part in parts
            if isinstance(part, dict) and not part.get('thought')
        )


def extract_first_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} object in text.

    Braces inside string literals are ignored, including escaped quotes.
    """
    in_string = False
    escaped = False
    depth = 0
    start = -1

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == '{':
            if depth == 0:
                start = i
            depth += 1
        elif ch == '}' and depth > 0:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def repair_json_newlines(text: str) -> str:
    """Escape literal newlines and carriage returns that sit inside string literals."""
    out = []
    in_string = False
    escaped = False

    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == '\\':
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch == '\n':
                out.append('\\n')
                continue
            elif ch == '\r':
                out.append('\\r')
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return ''.join(out)


def parse_model_json(text: str) -> Any:
    """
    Parse model output as JSON.

    Tries a direct parse, then the first balanced object, then the same
    object with in-string newlines escaped.

    Raises:
        InvalidModelJson: If every tier fails
    """
    raw = (text or '').strip()
    if not raw:
        raise InvalidModelJson("Model returned an empty response")

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass

    extracted = extract_first_json_object(raw)
    if extracted is None:
        raise InvalidModelJson("Could not locate a JSON object in the model response")

    try:
        return json.loads(extracted)
    except json.JSONDecodeError as e:
        first_error = e

    try:
        return json.loads(repair_json_newlines(extracted))
    except json.JSONDecodeError:
        raise InvalidModelJson(f"Invalid JSON from model: {first_error}") from first_error


def decode_encoded(obj: Any, key_b64: str, key_plain: str) -> str:
    """
    Read a code field that may be base64 encoded.

    Prefers obj[key_b64] (padding-tolerant), falls back to obj[key_plain],
    and returns '' when neither holds a usable string.
    """
    if not isinstance(obj, dict):
        return ''

    encoded = obj.get(key_b64)
    if isinstance(encoded, str) and encoded.strip():
        value = ''.join(encoded.split())
        value += '=' * (-len(value) % 4)
        try:
            return base64.b64decode(value, validate=False).decode('utf-8')
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Could not decode {key_b64} ({e}); trying {key_plain}")

    plain = obj.get(key_plain)
    return plain if isinstance(plain, str) else ''
