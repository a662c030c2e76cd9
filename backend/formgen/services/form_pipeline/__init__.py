"""
PDF Form Conversion Pipeline
============================

Turns an uploaded PDF form into a web form, a canonical field schema and a
printable template.

Pipeline Stages:
1. GUARD: page-count estimate from the raw bytes
2. PREPARE: rasterize pages, drop blank images, build model requests
3. EXTRACT: Gemini (AI-only / Vision) or Document AI (layout + form parser)
4. NORMALIZE: canonical schema with deterministic field names
5. RENDER: HTML with the preset class set, plus a printable template
6. VALIDATE: advisory label comparison against the PDF text layer
7. EDIT: AI-assisted edits of generated code, returned with line diffs

Design Principles:
- Deterministic names (printable placeholders and payload keys depend on them)
- Model output is untrusted text, parsed defensively
- Validation never fails a conversion
"""

from .schema import (
    BoundingBox,
    FieldRecord,
    SectionRecord,
    Schema,
    ValidationReport,
    RenderedForm,
    ConversionArtifact,
    EditArtifact,
)
from .normalizer import SchemaNormalizer
from .renderer import HTMLRenderer, PRESET_CSS, FLOATING_LABEL_JS, DEFAULT_FORM_HTML
from .validator import LabelValidator
from .printable import render_printable, populate_printable
from .diff import generate_code_diff
from .pipeline import FormConversionPipeline

__all__ = [
    'FormConversionPipeline',
    'ConversionArtifact',
    'EditArtifact',
    'Schema',
    'FieldRecord',
    'SectionRecord',
    'BoundingBox',
    'ValidationReport',
    'RenderedForm',
    'SchemaNormalizer',
    'HTMLRenderer',
    'LabelValidator',
    'render_printable',
    'populate_printable',
    'generate_code_diff',
    'PRESET_CSS',
    'FLOATING_LABEL_JS',
    'DEFAULT_FORM_HTML',
]
