"""
HTML renderer for canonical schemas.

Emits only the preset class vocabulary (ac-form-container, ac-input,
ac-check, ac-field-row, ac-cols-N, ...) so the shared stylesheet below
styles every generated form.
"""
import html
import logging
from typing import List, Optional

from .schema import FieldRecord, RenderedForm, Schema

logger = logging.getLogger(__name__)


PRESET_CSS = """
:root {
  --ac-color-primary: #667eea;
  --ac-color-primary-dark: #764ba2;
  --ac-color-text: #1a202c;
  --ac-color-text-light: #718096;
  --ac-color-border: #e2e8f0;
  --ac-color-bg: #ffffff;
  --ac-color-section-bg: #f8fafc;
  --ac-radius: 8px;
  --ac-transition: all 0.2s ease;
}
* { box-sizing: border-box; }
body {
  font-family: system-ui, -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
  background: #f6f7fb;
  margin: 0;
  padding: 20px;
}
.ac-form-container {
  background: var(--ac-color-bg);
  padding: 32px;
  width: 100%;
  max-width: 900px;
  margin: 0 auto;
  border-radius: var(--ac-radius);
  box-shadow: 0 10px 30px rgba(0,0,0,0.08);
}
.ac-form-title {
  margin: 0 0 24px;
  font-size: 24px;
  font-weight: 600;
  color: var(--ac-color-text);
  text-align: center;
}
.ac-form { display: flex; flex-direction: column; gap: 8px; }
.ac-section {
  border: 1px solid var(--ac-color-border);
  border-radius: var(--ac-radius);
  padding: 20px;
  margin: 16px 0;
  background: var(--ac-color-section-bg);
}
.ac-section-title {
  font-size: 16px;
  font-weight: 600;
  color: var(--ac-color-primary-dark);
  padding: 0 8px;
}
.ac-form-group { position: relative; margin-bottom: 16px; }

.ac-field-row, .ac-checkbox-row {
  display: grid;
  gap: 16px;
  margin-bottom: 16px;
}
.ac-cols-2 { grid-template-columns: repeat(2, 1fr); }
.ac-cols-3 { grid-template-columns: repeat(3, 1fr); }
.ac-cols-4 { grid-template-columns: repeat(4, 1fr); }
@media (max-width: 600px) {
  .ac-field-row, .ac-checkbox-row { grid-template-columns: 1fr !important; }
}

.ac-input, .ac-textarea {
  width: 100%;
  padding: 14px 12px 6px;
  border: 2px solid var(--ac-color-border);
  border-radius: var(--ac-radius);
  font-size: 15px;
  background: var(--ac-color-bg);
  outline: none;
  transition: var(--ac-transition);
}
.ac-textarea { min-height: 100px; resize: vertical; }
.ac-input:focus, .ac-textarea:focus { border-color: var(--ac-color-primary); }
.ac-label {
  position: absolute;
  top: 50%;
  left: 12px;
  transform: translateY(-50%);
  font-size: 14px;
  color: var(--ac-color-text-light);
  background: var(--ac-color-bg);
  padding: 0 4px;
  pointer-events: none;
  transition: var(--ac-transition);
}
.ac-textarea ~ .ac-label { top: 20px; transform: none; }
.ac-input:focus ~ .ac-label,
.ac-input:not(:placeholder-shown) ~ .ac-label,
.ac-input.ac-has-content ~ .ac-label,
.ac-textarea:focus ~ .ac-label,
.ac-textarea:not(:placeholder-shown) ~ .ac-label,
.ac-textarea.ac-has-content ~ .ac-label {
  top: -8px;
  transform: none;
  font-size: 12px;
  color: var(--ac-color-primary);
}

.ac-check {
  display: flex;
  align-items: center;
  gap: 8px;
  cursor: pointer;
  font-size: 14px;
  color: var(--ac-color-text);
  padding: 6px 0;
}
.ac-check input { display: none; }
.ac-check span {
  width: 20px;
  height: 20px;
  border: 2px solid var(--ac-color-border);
  border-radius: 4px;
  display: flex;
  align-items: center;
  justify-content: center;
  transition: var(--ac-transition);
  flex-shrink: 0;
}
.ac-check input:checked + span {
  background: var(--ac-color-primary);
  border-color: var(--ac-color-primary);
}
.ac-check input:checked + span::after {
  content: '';
  width: 6px;
  height: 10px;
  border: solid white;
  border-width: 0 2px 2px 0;
  transform: rotate(45deg);
}

.ac-button {
  width: 100%;
  margin-top: 24px;
  padding: 14px;
  border: none;
  border-radius: var(--ac-radius);
  font-size: 16px;
  font-weight: 600;
  background: linear-gradient(135deg, var(--ac-color-primary), var(--ac-color-primary-dark));
  color: #fff;
  cursor: pointer;
  transition: var(--ac-transition);
}
.ac-button:hover { transform: translateY(-1px); box-shadow: 0 4px 12px rgba(102,126,234,0.3); }
""".strip()


FLOATING_LABEL_JS = """
document.addEventListener('DOMContentLoaded', () => {
  document.querySelectorAll('.ac-input, .ac-textarea').forEach(el => {
    const update = () => el.classList.toggle('ac-has-content', el.value.trim() !== '');
    el.addEventListener('input', update);
    el.addEventListener('change', update);
    update();
  });
});
""".strip()


# Starter form used when a model answer carries no usable HTML
DEFAULT_FORM_HTML = """
<div class="ac-form-container">
  <h1 class="ac-form-title">New Form</h1>
  <form data-anchor-form class="ac-form" novalidate>
    <div class="ac-form-group">
      <input class="ac-input" id="f_name" name="name" placeholder=" " />
      <label class="ac-label" for="f_name">Full Name</label>
    </div>
    <div class="ac-form-group">
      <input class="ac-input" id="f_email" name="email" type="email" placeholder=" " />
      <label class="ac-label" for="f_email">Email</label>
    </div>
    <div class="ac-form-group">
      <textarea class="ac-textarea" id="f_message" name="message" placeholder=" "></textarea>
      <label class="ac-label" for="f_message">Message</label>
    </div>
    <button class="ac-button" type="submit">Submit</button>
  </form>
</div>
""".strip()


def escape_html(text: Optional[str]) -> str:
    """Escape & < > " ' for element text and attribute values."""
    return html.escape(text or '', quote=True)


def group_rows(fields: List[FieldRecord], threshold: float, max_per_row: int = 4) -> List[List[FieldRecord]]:
    """
    Split fields into visual rows.

    A field joins the current row while its y is within threshold of the
    previous field's y and the row holds fewer than max_per_row fields.
    """
    rows: List[List[FieldRecord]] = []
    for record in fields:
        if rows:
            row = rows[-1]
            if abs(record.y - row[-1].y) <= threshold and len(row) < max_per_row:
                row.append(record)
                continue
        rows.append([record])
    return rows


class HTMLRenderer:
    """Renders a canonical Schema into form HTML, preset CSS and floating-label JS."""

    CHECKBOX_ROW_THRESHOLD = 0.025
    FIELD_ROW_THRESHOLD = 0.02
    MAX_PER_ROW = 4
    DEFAULT_TITLE = 'Imported PDF Form'

    def render(self, schema: Schema, form_title: Optional[str] = None) -> RenderedForm:
        """
        Render a schema.

        Args:
            schema: Canonical schema
            form_title: Heading text (defaults to 'Imported PDF Form')

        Returns:
            RenderedForm with html, css and js
        """
        title = form_title or self.DEFAULT_TITLE
        body = self._render_sections(schema) if schema.sections else self._render_pages(schema)

        markup = (
            '<div class="ac-form-container">\n'
            f'  <h1 class="ac-form-title">{escape_html(title)}</h1>\n'
            '  <form data-anchor-form class="ac-form" novalidate>'
            f'{body}\n'
            '    <button class="ac-button" type="submit">Submit</button>\n'
            '  </form>\n'
            '</div>'
        )
        logger.info(f"Rendered {len(schema.fields)} fields in {len(schema.sections)} sections")
        return RenderedForm(html=markup, css=PRESET_CSS, js=FLOATING_LABEL_JS)

    def _render_sections(self, schema: Schema) -> str:
        by_section = {}
        unsectioned = []
        for record in schema.fields:
            if record.section_id:
                by_section.setdefault(record.section_id, []).append(record)
            else:
                unsectioned.append(record)

        parts = [self.render_group(unsectioned)]
        for section in schema.sections:
            members = by_section.get(section.id, [])
            if not members and not section.title:
                continue
            parts.append(self._fieldset('ac-section', section.title, self.render_group(members)))
        return ''.join(parts)

    def _render_pages(self, schema: Schema) -> str:
        by_page = {}
        for record in schema.fields:
            by_page.setdefault(record.page_number or 1, []).append(record)

        page_count = max([schema.page_count or 1] + list(by_page))
        parts = []
        for page_number in range(1, page_count + 1):
            members = by_page.get(page_number)
            if not members:
                continue
            if page_count > 1:
                parts.append(self._fieldset('ac-section ac-page-section', f"Page {page_number}", self.render_group(members)))
            else:
                parts.append(self.render_group(members))
        return ''.join(parts)

    @staticmethod
    def _fieldset(css_class: str, title: str, inner: str) -> str:
        return (
            f'\n    <fieldset class="{css_class}">'
            f'\n      <legend class="ac-section-title">{escape_html(title)}</legend>'
            f'{inner}'
            '\n    </fieldset>'
        )

    def render_group(self, fields: List[FieldRecord]) -> str:
        """Render one group: checkbox rows first, then text rows."""
        checkboxes = [f for f in fields if f.input_type == 'checkbox']
        others = [f for f in fields if f.input_type != 'checkbox']
        out = []

        for row in group_rows(checkboxes, self.CHECKBOX_ROW_THRESHOLD, self.MAX_PER_ROW):
            if len(row) == 1:
                out.append(f'\n    <div class="ac-form-group">{self._checkbox(row[0])}\n    </div>')
            else:
                items = ''.join(self._checkbox(f) for f in row)
                out.append(f'\n    <div class="ac-checkbox-row ac-cols-{len(row)}">{items}\n    </div>')

        for row in group_rows(others, self.FIELD_ROW_THRESHOLD, self.MAX_PER_ROW):
            if len(row) == 1:
                out.append(self._form_group(row[0]))
            else:
                items = ''.join(self._form_group(f) for f in row)
                out.append(f'\n    <div class="ac-field-row ac-cols-{len(row)}">{items}\n    </div>')

        return ''.join(out)

    @staticmethod
    def _checkbox(record: FieldRecord) -> str:
        name = escape_html(record.name)
        return (
            '\n      <label class="ac-check">'
            f'\n        <input type="checkbox" name="{name}" value="true" />'
            '\n        <span></span>'
            f'\n        {escape_html(record.label or record.name)}'
            '\n      </label>'
        )

    @staticmethod
    def _form_group(record: FieldRecord) -> str:
        name = escape_html(record.name)
        field_id = f"f_{name}"
        required = ' required' if record.required else ''
        if record.input_type == 'textarea':
            control = (
                f'<textarea class="ac-textarea" id="{field_id}" name="{name}" '
                f'placeholder=" "{required}></textarea>'
            )
        else:
            control = f'<input class="ac-input" id="{field_id}" name="{name}" placeholder=" "{required} />'
        return (
            '\n    <div class="ac-form-group">'
            f'\n      {control}'
            f'\n      <label class="ac-label" for="{field_id}">{escape_html(record.label or record.name)}</label>'
            '\n    </div>'
        )
