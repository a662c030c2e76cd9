"""
Printable templates for completed submissions.

A printable is an {html, css, js} bundle whose html holds {{field_name}}
placeholders. render_printable builds one from a canonical schema and
populate_printable fills it with a submission payload.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

from .renderer import escape_html
from .schema import FieldRecord, Schema

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r'\{\{\s*([A-Za-z0-9_\-\.]+)\s*\}\}')

PRINT_CSS = """
body { font-family: Georgia, 'Times New Roman', serif; color: #111; margin: 0; padding: 24px; }
.ac-print { max-width: 800px; margin: 0 auto; }
.ac-print-title { font-size: 20px; text-align: center; margin: 0 0 16px; }
.ac-print-section { border-top: 1px solid #999; padding-top: 8px; margin-top: 16px; }
.ac-print-section-title { font-size: 14px; text-transform: uppercase; margin: 0 0 8px; }
.ac-print-row { display: flex; gap: 8px; padding: 4px 0; border-bottom: 1px dotted #ccc; }
.ac-print-label { font-weight: bold; min-width: 40%; }
.ac-print-value { flex: 1; white-space: pre-wrap; }
.ac-print-check { display: inline-block; min-width: 3em; font-weight: bold; }
@media print {
  body { padding: 0; }
  .ac-print-section { page-break-inside: avoid; }
}
""".strip()

DOCUMENT_TEMPLATE = """<!doctype html>
<html>
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{title}</title>
    <style>
{css}
      @media print {{ .no-print {{ display: none !important; }} }}
    </style>
  </head>
  <body>
    <div class="no-print" style="padding:8px 12px; font-family: system-ui; font-size: 12px; color: #666;">
      <button onclick="window.print()">Print</button>
    </div>
{html}
    <script>{js}</script>
  </body>
</html>"""


def _row(record: FieldRecord) -> str:
    label = escape_html(record.label or record.name)
    placeholder = f"{{{{{record.name}}}}}"
    if record.input_type == 'checkbox':
        return (
            '\n      <div class="ac-print-row">'
            f'<span class="ac-print-check" data-print-text>{placeholder}</span>'
            f'<span class="ac-print-label">{label}</span></div>'
        )
    return (
        '\n      <div class="ac-print-row">'
        f'<span class="ac-print-label">{label}:</span>'
        f'<span class="ac-print-value" data-print-text>{placeholder}</span></div>'
    )


def render_printable(schema: Schema, form_title: Optional[str] = None) -> Dict[str, str]:
    """
    Build a print layout for a canonical schema.

    Unsectioned fields come first, then one block per section in order.

    Returns:
        {'html', 'css', 'js'}
    """
    title = escape_html(form_title or 'Form Submission')
    by_section: Dict[Optional[str], list] = {}
    for record in schema.fields:
        by_section.setdefault(record.section_id, []).append(record)

    blocks = []
    loose = by_section.get(None, [])
    if loose:
        blocks.append('\n    <div class="ac-print-section">' + ''.join(_row(f) for f in loose) + '\n    </div>')
    for section in schema.sections:
        members = by_section.get(section.id, [])
        if not members:
            continue
        blocks.append(
            '\n    <div class="ac-print-section">'
            f'\n      <h2 class="ac-print-section-title">{escape_html(section.title)}</h2>'
            + ''.join(_row(f) for f in members)
            + '\n    </div>'
        )

    markup = f'<div class="ac-print">\n    <h1 class="ac-print-title">{title}</h1>' + ''.join(blocks) + '\n</div>'
    return {'html': markup, 'css': PRINT_CSS, 'js': ''}


def _format_value(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def fill_placeholders(template: str, payload: Dict[str, Any]) -> str:
    """Replace every {{ key }} with the HTML-escaped payload value, or '' when absent."""
    return PLACEHOLDER.sub(lambda m: escape_html(_format_value(payload.get(m.group(1)))), template or '')


def populate_printable(
    printable: Dict[str, Any],
    payload: Optional[Dict[str, Any]],
    title: str = 'Print Submission'
) -> str:
    """
    Produce a complete HTML document for one submission.

    Args:
        printable: {'html', 'css', 'js'} bundle
        payload: Submitted values keyed by field name
        title: Document title

    Returns:
        Full HTML document

    Raises:
        ValueError: If the printable has no html
    """
    markup = str((printable or {}).get('html') or '').strip()
    if not markup:
        raise ValueError("Printable template not configured for this form version.")

    document = DOCUMENT_TEMPLATE.format(
        title=escape_html(title),
        css=str(printable.get('css') or '').strip(),
        html=fill_placeholders(markup, payload or {}),
        js=str(printable.get('js') or '').strip()
    )
    logger.info(f"Populated printable with {len(payload or {})} payload value(s)")
    return document
