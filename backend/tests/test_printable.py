import pytest

from formgen.services.form_pipeline.printable import (
    PRINT_CSS,
    fill_placeholders,
    populate_printable,
    render_printable,
)
from formgen.services.form_pipeline.schema import FieldRecord, Schema, SectionRecord


def make_schema():
    return Schema(
        template_id="t",
        sections=[SectionRecord(id="section_0001", title="Consent", page_number=1, y=0.5)],
        fields=[
            FieldRecord(id="field_0001", name="first_name", label="First Name", input_type="text",
                        page_number=1, y=0.1, x=0.1),
            FieldRecord(id="field_0002", name="agree", label="I agree", input_type="checkbox",
                        page_number=1, y=0.6, x=0.1, section_id="section_0001"),
        ],
    )


def test_render_printable_has_placeholders():
    printable = render_printable(make_schema(), form_title="Intake")

    assert printable["css"] == PRINT_CSS
    assert printable["js"] == ""
    assert "First Name:</span>" in printable["html"]
    assert "{{first_name}}" in printable["html"]
    assert "{{agree}}</span><span class=\"ac-print-label\">I agree" in printable["html"]
    assert printable["html"].index("{{first_name}}") < printable["html"].index("Consent")


def test_fill_placeholders_formats_values():
    template = "{{ a }}|{{b}}|{{c}}|{{d}}|{{missing}}|{{e}}"
    payload = {"a": "<x>", "b": True, "c": None, "d": {"k": [1]}, "e": 3}

    assert fill_placeholders(template, payload) == '&lt;x&gt;|true||{&quot;k&quot;: [1]}||3'


def test_populate_printable_builds_document():
    printable = render_printable(make_schema())

    document = populate_printable(printable, {"first_name": "Ana <b>", "agree": False}, title="Print & Go")

    assert document.startswith("<!doctype html>")
    assert "<title>Print &amp; Go</title>" in document
    assert "Ana &lt;b&gt;" in document
    assert ">false</span>" in document
    assert "{{" not in document
    assert "window.print()" in document


def test_populate_printable_requires_html():
    with pytest.raises(ValueError, match="Printable template not configured"):
        populate_printable({"html": "   ", "css": ""}, {})
    with pytest.raises(ValueError):
        populate_printable(None, {})
