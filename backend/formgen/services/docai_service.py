"""
Google Document AI service for layout and form parsing of PDF forms.
"""
import base64
import copy
import logging
from typing import Dict, Any, Optional, List

import requests

from formgen.config import Config
from formgen.errors import ConfigurationError, DocAiError, UpstreamTimeout
from formgen.utils.google_auth import GoogleTokenProvider, get_token_provider
from formgen.utils.http_session import ThreadLocalSession

logger = logging.getLogger(__name__)

# (anchor key, segments key, start key, end key) for both JSON spellings
_ANCHOR_STYLES = (
    ('textAnchor', 'textSegments', 'startIndex', 'endIndex'),
    ('text_anchor', 'text_segments', 'start_index', 'end_index'),
)


class DocumentAIService:
    """Service for processing documents with Google Document AI processors."""

    def __init__(
        self,
        token_provider: Optional[GoogleTokenProvider] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None
    ):
        """
        Initialize Document AI service.

        Args:
            token_provider: Optional token provider (defaults to the shared one)
            session: Optional requests session (defaults to one session per thread)
            timeout: Request timeout in seconds (defaults to Config.HTTP_TIMEOUT)
        """
        self.service_name = 'documentai'
        self.token_provider = token_provider or get_token_provider()
        self.session = session or ThreadLocalSession()
        self.timeout = timeout or Config.HTTP_TIMEOUT

    @staticmethod
    def endpoint(project_id: str, location: str, processor_id: str) -> str:
        """Build the :process URL for a processor."""
        host = 'documentai.googleapis.com' if location == 'us' else f"{location}-documentai.googleapis.com"
        return (
            f"https://{host}/v1/projects/{project_id}/locations/{location}"
            f"/processors/{processor_id}:process"
        )

    def process_image(
        self,
        image_bytes: bytes,
        mime_type: str,
        project_id: Optional[str],
        location: Optional[str],
        processor_id: Optional[str]
    ) -> Dict[str, Any]:
        """
        Send a raw document (PDF or page image) to a processor.

        Args:
            image_bytes: Raw document bytes
            mime_type: application/pdf, image/jpeg or image/png
            project_id: Google Cloud project
            location: Processor location (e.g. 'us')
            processor_id: Processor id

        Returns:
            Parsed JSON response

        Raises:
            ConfigurationError: If an id is missing
            DocAiError: On non-2xx status or a non-JSON body
            UpstreamTimeout: If the request times out
        """
        if not image_bytes:
            raise ValueError("Missing document bytes")
        if not project_id:
            raise ConfigurationError("Missing projectId for Document AI (set PROJECT_ID)")
        if not location:
            raise ConfigurationError("Missing location for Document AI (set DOCUMENTAI_LOCATION)")
        if not processor_id:
            raise ConfigurationError("Missing processorId for Document AI")

        token = self.token_provider.get_token()
        url = self.endpoint(project_id, location, processor_id)
        body = {
            'rawDocument': {
                'content': base64.b64encode(image_bytes).decode('ascii'),
                'mimeType': mime_type
            }
        }

        logger.info(f"Document AI request: processor={processor_id} mime={mime_type} bytes={len(image_bytes)}")
        try:
            response = self.session.post(
                url,
                headers={
                    'Authorization': f"Bearer {token}",
                    'Content-Type': 'application/json'
                },
                json=body,
                timeout=self.timeout
            )
        except requests.Timeout as e:
            raise UpstreamTimeout(f"Document AI call to {processor_id} timed out after {self.timeout}s") from e

        text = response.text
        if not response.ok:
            logger.error(f"Document AI returned {response.status_code} for processor {processor_id}")
            raise DocAiError(response.status_code, text[:500])
        try:
            return response.json()
        except ValueError as e:
            raise DocAiError(response.status_code, f"malformed response, not JSON ({e})") from e

    @staticmethod
    def merge_pages(page_results: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Merge per-page results into one document with consistent text anchors.

        Each input holds one page and its own `text`. The merged `text` is the
        concatenation in order, and every anchor segment of page k is shifted
        by the length of the text before it. Entities are carried over the
        same way, with their page references pointing at the merged page.
        Inputs are not modified.

        Args:
            page_results: Per-page processor results, in ascending page order

        Returns:
            {'document': {'text': str, 'pages': [...], 'entities': [...]}}
        """
        merged_text = ''
        merged_pages = []
        merged_entities = []

        for result in page_results:
            doc = (result or {}).get('document', result) or {}
            pages = doc.get('pages') or []
            if not pages:
                continue
            offset = len(merged_text)
            page_index = len(merged_pages)
            page = copy.deepcopy(pages[0])
            _shift_anchors(page, offset)
            merged_pages.append(page)
            for entity in copy.deepcopy(doc.get('entities') or []):
                _shift_anchors(entity, offset)
                _repoint_page_refs(entity, page_index)
                merged_entities.append(entity)
            merged_text += str(doc.get('text') or '')

        logger.info(
            f"Merged {len(merged_pages)} Document AI page result(s), {len(merged_text)} chars of text, "
            f"{len(merged_entities)} entities"
        )
        return {'document': {'text': merged_text, 'pages': merged_pages, 'entities': merged_entities}}


def _shift_segment(segment: Dict[str, Any], offset: int, start_key: str, end_key: str):
    """Shift one segment in place, writing indices back as numeric strings."""
    if end_key not in segment and start_key not in segment:
        return
    # proto3 JSON omits zero-valued startIndex
    start = int(segment.get(start_key) or 0)
    end = int(segment.get(end_key) or 0)
    segment[start_key] = str(start + offset)
    segment[end_key] = str(end + offset)


def _shift_anchors(node: Any, offset: int):
    """Recursively shift every text-anchor segment under node by offset."""
    if isinstance(node, list):
        for item in node:
            _shift_anchors(item, offset)
        return
    if not isinstance(node, dict):
        return

    for anchor_key, _, _, _ in _ANCHOR_STYLES:
        anchor = node.get(anchor_key)
        if not isinstance(anchor, dict):
            continue
        segments = anchor.get('textSegments')
        if segments is None:
            segments = anchor.get('text_segments')
        for segment in segments or []:
            if not isinstance(segment, dict):
                continue
            if 'start_index' in segment or 'end_index' in segment:
                _shift_segment(segment, offset, 'start_index', 'end_index')
            if 'startIndex' in segment or 'endIndex' in segment:
                _shift_segment(segment, offset, 'startIndex', 'endIndex')

    for key, value in node.items():
        if key in ('textAnchor', 'text_anchor'):
            continue
        if isinstance(value, (dict, list)):
            _shift_anchors(value, offset)


def _repoint_page_refs(node: Any, page_index: int):
    """Point every page reference under node at the 0-based merged page index."""
    if isinstance(node, list):
        for item in node:
            _repoint_page_refs(item, page_index)
        return
    if not isinstance(node, dict):
        return

    for anchor_key, refs_key in (('pageAnchor', 'pageRefs'), ('page_anchor', 'page_refs')):
        anchor = node.get(anchor_key)
        if isinstance(anchor, dict):
            for ref in anchor.get(refs_key) or []:
                if isinstance(ref, dict):
                    ref['page'] = str(page_index)

    for key, value in node.items():
        if isinstance(value, (dict, list)):
            _repoint_page_refs(value, page_index)
