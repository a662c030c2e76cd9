import base64

import pytest
import requests

from formgen.errors import ConfigurationError, DocAiError, UpstreamTimeout
from formgen.services.docai_service import DocumentAIService

from fakes import FakeResponse, FakeSession, FakeTokenProvider


def page_result(text, anchor_key="textAnchor", segments_key="textSegments",
                start_key="startIndex", end_key="endIndex", start=0, end=None, page_number=1):
    segment = {end_key: str(len(text) if end is None else end)}
    if start is not None:
        segment[start_key] = str(start)
    return {
        "document": {
            "text": text,
            "pages": [{
                "pageNumber": page_number,
                "formFields": [{
                    "fieldName": {anchor_key: {segments_key: [segment]}},
                }],
            }],
        }
    }


def anchor_text(text, segment, start_key="startIndex", end_key="endIndex"):
    return text[int(segment.get(start_key, 0)):int(segment[end_key])]


@pytest.fixture
def service():
    return DocumentAIService(token_provider=FakeTokenProvider(), session=FakeSession(), timeout=5)


def test_merge_shifts_anchors_by_prior_text():
    first = page_result("Name:\n")
    second = page_result("Email:\n", start=0, end=6, page_number=1)

    merged = DocumentAIService.merge_pages([first, second])["document"]

    assert merged["text"] == "Name:\nEmail:\n"
    assert len(merged["pages"]) == 2
    segment = merged["pages"][1]["formFields"][0]["fieldName"]["textAnchor"]["textSegments"][0]
    assert segment == {"startIndex": "6", "endIndex": "12"}
    assert anchor_text(merged["text"], segment) == "Email:"


def test_merge_handles_snake_case_anchors():
    pages = [
        page_result("Header text\n", "text_anchor", "text_segments", "start_index", "end_index"),
        page_result("Date:", "text_anchor", "text_segments", "start_index", "end_index"),
    ]

    merged = DocumentAIService.merge_pages(pages)["document"]

    segment = merged["pages"][1]["formFields"][0]["fieldName"]["text_anchor"]["text_segments"][0]
    assert anchor_text(merged["text"], segment, "start_index", "end_index") == "Date:"


def test_merge_treats_missing_start_as_zero():
    pages = [page_result("abc"), page_result("Phone:", start=None)]

    merged = DocumentAIService.merge_pages(pages)["document"]

    segment = merged["pages"][1]["formFields"][0]["fieldName"]["textAnchor"]["textSegments"][0]
    assert segment["startIndex"] == "3"
    assert anchor_text(merged["text"], segment) == "Phone:"


def test_merge_does_not_mutate_inputs():
    second = page_result("Email:")

    DocumentAIService.merge_pages([page_result("Name:"), second])

    segment = second["document"]["pages"][0]["formFields"][0]["fieldName"]["textAnchor"]["textSegments"][0]
    assert segment["startIndex"] == "0"


def test_merge_skips_results_without_pages():
    merged = DocumentAIService.merge_pages([{"document": {"text": "x", "pages": []}}, page_result("Name:")])

    assert merged["document"]["text"] == "Name:"
    assert len(merged["document"]["pages"]) == 1


def test_merge_carries_entities_with_shifted_anchors():
    first = page_result("Name:\n")
    second = page_result("Policy 123\n")
    second["document"]["entities"] = [{
        "type": "policy_number",
        "mentionText": "Policy 123",
        "textAnchor": {"textSegments": [{"endIndex": "10"}]},
        "pageAnchor": {"pageRefs": [{}]},
    }]

    merged = DocumentAIService.merge_pages([first, second])["document"]

    entity = merged["entities"][0]
    segment = entity["textAnchor"]["textSegments"][0]
    assert anchor_text(merged["text"], segment) == "Policy 123"
    assert entity["pageAnchor"]["pageRefs"] == [{"page": "1"}]
    assert second["document"]["entities"][0]["pageAnchor"]["pageRefs"] == [{}]


def test_merge_without_entities_yields_empty_list():
    merged = DocumentAIService.merge_pages([page_result("Name:")])

    assert merged["document"]["entities"] == []


def test_endpoint_host_depends_on_location():
    assert DocumentAIService.endpoint("p", "us", "abc").startswith(
        "https://documentai.googleapis.com/v1/projects/p/locations/us/processors/abc"
    )
    assert "https://eu-documentai.googleapis.com/" in DocumentAIService.endpoint("p", "eu", "abc")


def test_process_image_posts_raw_document():
    session = FakeSession(FakeResponse(200, {"document": {"text": "", "pages": []}}))
    service = DocumentAIService(token_provider=FakeTokenProvider(), session=session, timeout=5)

    result = service.process_image(b"%PDF-1.4", "application/pdf", "proj", "us", "layout-1")

    assert result == {"document": {"text": "", "pages": []}}
    call = session.calls[0]
    assert call["url"].endswith("/processors/layout-1:process")
    assert call["headers"]["Authorization"] == "Bearer test-token"
    assert call["json"]["rawDocument"]["mimeType"] == "application/pdf"
    assert base64.b64decode(call["json"]["rawDocument"]["content"]) == b"%PDF-1.4"
    assert call["timeout"] == 5


def test_process_image_error_status_raises():
    session = FakeSession(FakeResponse(403, text="PERMISSION_DENIED " + "x" * 1000))
    service = DocumentAIService(token_provider=FakeTokenProvider(), session=session)

    with pytest.raises(DocAiError) as excinfo:
        service.process_image(b"img", "image/jpeg", "proj", "us", "form-1")

    assert excinfo.value.status == 403
    assert excinfo.value.body_prefix.startswith("PERMISSION_DENIED")
    assert len(excinfo.value.body_prefix) == 500


def test_process_image_non_json_body_raises():
    session = FakeSession(FakeResponse(200, text="<html>oops</html>"))
    service = DocumentAIService(token_provider=FakeTokenProvider(), session=session)

    with pytest.raises(DocAiError, match="not JSON"):
        service.process_image(b"img", "image/jpeg", "proj", "us", "form-1")


def test_process_image_timeout():
    session = FakeSession(requests.Timeout("slow"))
    service = DocumentAIService(token_provider=FakeTokenProvider(), session=session)

    with pytest.raises(UpstreamTimeout):
        service.process_image(b"img", "image/jpeg", "proj", "us", "form-1")


def test_process_image_requires_ids(service):
    with pytest.raises(ConfigurationError):
        service.process_image(b"img", "image/jpeg", "proj", "us", "")
    with pytest.raises(ConfigurationError):
        service.process_image(b"img", "image/jpeg", None, "us", "form-1")
    with pytest.raises(ValueError):
        service.process_image(b"", "image/jpeg", "proj", "us", "form-1")
    assert service.session.calls == []
