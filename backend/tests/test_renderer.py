import pytest

from formgen.services.form_pipeline.renderer import (
    FLOATING_LABEL_JS,
    PRESET_CSS,
    HTMLRenderer,
    escape_html,
    group_rows,
)
from formgen.services.form_pipeline.schema import FieldRecord, Schema, SectionRecord


def field(name, y, x=0.1, input_type="text", page=1, label=None, section_id=None):
    return FieldRecord(
        id="", name=name, label=label or name.title(), input_type=input_type,
        page_number=page, y=y, x=x, section_id=section_id
    )


@pytest.fixture
def renderer():
    return HTMLRenderer()


def test_render_escapes_labels_and_title(renderer):
    schema = Schema(template_id="t", fields=[field("q", 0.1, label='<b>"Tom" & Jerry\'s</b>')], page_count=1)

    rendered = renderer.render(schema, form_title="A < B")

    assert "&lt;b&gt;&quot;Tom&quot; &amp; Jerry&#x27;s&lt;/b&gt;" in rendered.html
    assert "<b>" not in rendered.html
    assert '<h1 class="ac-form-title">A &lt; B</h1>' in rendered.html


def test_render_uses_preset_css_and_js(renderer):
    rendered = renderer.render(Schema(template_id="t"))

    assert rendered.css == PRESET_CSS
    assert rendered.js == FLOATING_LABEL_JS
    assert "data-anchor-form" in rendered.html
    assert "Imported PDF Form" in rendered.html


def test_inputs_carry_field_names(renderer):
    schema = Schema(template_id="t", fields=[
        field("first_name", 0.1),
        field("notes", 0.3, input_type="textarea"),
        field("consent", 0.5, input_type="checkbox"),
    ], page_count=1)

    html = renderer.render(schema).html

    assert '<input class="ac-input" id="f_first_name" name="first_name" placeholder=" " />' in html
    assert '<textarea class="ac-textarea" id="f_notes" name="notes"' in html
    assert '<input type="checkbox" name="consent" value="true" />' in html


def test_same_row_fields_share_a_grid_row(renderer):
    schema = Schema(template_id="t", fields=[
        field("city", 0.30, x=0.1),
        field("state", 0.305, x=0.4),
        field("zip", 0.31, x=0.7),
        field("street", 0.5),
    ], page_count=1)

    html = renderer.render(schema).html

    assert html.count('class="ac-field-row ac-cols-3"') == 1
    assert 'ac-cols-4' not in html


def test_rows_cap_at_four():
    fields = [field(f"f{i}", 0.2, x=i * 0.1) for i in range(6)]

    rows = group_rows(fields, threshold=0.02, max_per_row=4)

    assert [len(row) for row in rows] == [4, 2]


def test_checkboxes_render_before_text_fields(renderer):
    schema = Schema(template_id="t", fields=[
        field("name", 0.1),
        field("yes", 0.2, x=0.1, input_type="checkbox"),
        field("no", 0.21, x=0.3, input_type="checkbox"),
    ], page_count=1)

    html = renderer.render(schema).html

    assert 'class="ac-checkbox-row ac-cols-2"' in html
    assert html.index('name="yes"') < html.index('name="name"')


def test_multi_page_forms_get_page_fieldsets(renderer):
    schema = Schema(template_id="t", fields=[field("a", 0.1), field("b", 0.1, page=3)], page_count=3)

    html = renderer.render(schema).html

    assert '<legend class="ac-section-title">Page 1</legend>' in html
    assert '<legend class="ac-section-title">Page 3</legend>' in html
    assert "Page 2" not in html


def test_single_page_form_has_no_fieldset(renderer):
    schema = Schema(template_id="t", fields=[field("a", 0.1)], page_count=1)

    assert "<fieldset" not in renderer.render(schema).html


def test_sections_render_as_fieldsets(renderer):
    sections = [SectionRecord(id="section_0001", title="Contact & Address", page_number=1, y=0.1)]
    schema = Schema(template_id="t", sections=sections, fields=[
        field("intro", 0.05),
        field("phone", 0.2, section_id="section_0001"),
    ], page_count=1)

    html = renderer.render(schema).html

    assert '<legend class="ac-section-title">Contact &amp; Address</legend>' in html
    assert html.index('name="intro"') < html.index("<fieldset")
    assert html.index("<fieldset") < html.index('name="phone"')


def test_escape_html_handles_none():
    assert escape_html(None) == ""
    assert escape_html("a'b") == "a&#x27;b"
