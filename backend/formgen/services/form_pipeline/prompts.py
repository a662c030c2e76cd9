"""
Prompt templates for the model-driven conversion strategies and the AI editor.

Templates are filled with str.format, so literal braces are doubled.
"""

NO_INSTRUCTIONS = '(none)'

PDF_TO_FORM_PROMPT = """You are a form builder assistant. Analyze this PDF document and generate a complete HTML form (HTML + CSS + vanilla JavaScript).

Requirements:
1. Extract all form fields from the PDF
2. Determine appropriate input types (text, select, date, checkbox, etc.)
3. Add proper validation where needed
4. Output MUST be standard HTML elements (no React, no MUI)
5. Include a <form data-anchor-form> root element and use name="..." on inputs
6. Include a submit button
7. Keep it compatible with being embedded in an iframe
8. If the PDF has multiple pages, include fields from ALL pages. Use headings/section dividers to keep it readable.
9. Preserve every label, heading and option exactly as written in the PDF. Do not summarize or skip anything.

User instructions (apply these preferences if present):
{instructions}

Output format - return a JSON object with these fields (IMPORTANT: html/css/js MUST be base64 encoded so the JSON is always valid):
{{
  "html_b64": "base64(utf8(html))",
  "css_b64": "base64(utf8(css))",
  "js_b64": "base64(utf8(js))",
  "explanation": "Brief explanation of the form structure"
}}

Important:
- Do NOT output React code
- Do NOT output MUI components
- Prefer simple, clean markup and CSS
- If you add JS, keep it minimal and defensive
- Return ONLY the JSON object (no markdown, no extra commentary)"""


VISION_PROMPT = """You are an expert form reconstruction assistant. You are given a PDF form and images of its pages. Rebuild the form as HTML that reproduces every visible field, label, heading and option, in reading order.

Step 1 - Extract: read each page image top to bottom, left to right. List every section heading, field label, checkbox option and instruction text. Preserve wording, capitalization and punctuation exactly.
Step 2 - Rebuild: produce HTML using ONLY these preset classes (a shared stylesheet defines them):
- Container: <div class="ac-form-container"> with <h1 class="ac-form-title">
- Root form: <form data-anchor-form class="ac-form" novalidate>
- Sections: <fieldset class="ac-section"><legend class="ac-section-title">...</legend>
- Text field: <div class="ac-form-group"><input class="ac-input" id="f_NAME" name="NAME" placeholder=" " /><label class="ac-label" for="f_NAME">Label</label></div>
- Long text: same pattern with <textarea class="ac-textarea">
- Checkbox: <label class="ac-check"><input type="checkbox" name="NAME" value="true" /><span></span>Label</label>
- Fields side by side on one line: <div class="ac-field-row ac-cols-N"> (N = 2..4)
- Checkboxes side by side: <div class="ac-checkbox-row ac-cols-N"> (N = 2..4)
- Submit: <button class="ac-button" type="submit">Submit</button>
Field names must be snake_case versions of their labels and unique within the form.
Step 3 - Printable template: ALSO produce a separate print layout that shows a completed submission. Every field value must appear as a {{{{field_name}}}} placeholder using the same names as the form. Keep the printed order and headings identical to the PDF.

User instructions (apply these preferences if present):
{instructions}

Output format - return a JSON object with these fields (IMPORTANT: all code MUST be base64 encoded so the JSON is always valid):
{{
  "html_b64": "base64(utf8(form html))",
  "css_b64": "base64(utf8(css overrides only, may be empty))",
  "js_b64": "base64(utf8(js, may be empty))",
  "print_html_b64": "base64(utf8(printable html with {{{{field_name}}}} placeholders))",
  "print_css_b64": "base64(utf8(printable css))",
  "print_js_b64": "base64(utf8(printable js, may be empty))",
  "explanation": "Brief explanation of the form structure"
}}

Return ONLY the JSON object (no markdown, no extra commentary)."""


OMITTED_PAGES_NOTE = (
    "Note: {count} page image(s) were omitted because they were blank or over the "
    "page limit. Use the attached PDF for any content not visible in the images."
)


def format_instructions(instructions: str) -> str:
    return (instructions or '').strip() or NO_INSTRUCTIONS


EDIT_FORM_PROMPT = """You are a form code editor assistant. Modify the following HTML form (HTML/CSS/JS) based on the user's instruction.

Current HTML:
```html
{html}
```

Current CSS:
```css
{css}
```

User instruction: {instruction}

Output format - return a JSON object (IMPORTANT: html/css/js MUST be base64 encoded so the JSON is always valid):
{{
  "html_b64": "base64(utf8(html))",
  "css_b64": "base64(utf8(css))",
  "js_b64": "base64(utf8(js))",
  "changes_made": ["List of changes made"],
  "explanation": "Brief explanation of what was changed"
}}

Important:
- Do NOT output React or MUI
- Keep a <form data-anchor-form> root element
- Preserve/introduce name="..." attributes on inputs
- Only modify what is needed to fulfill the instruction
- If you output JS, keep it minimal and defensive
- If you are editing a PRINT TEMPLATE, use {{{{field_name}}}} placeholders for submission values and do not remove them
- Return ONLY the JSON object (no markdown, no extra commentary)"""
