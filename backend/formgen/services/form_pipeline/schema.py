"""
Canonical Form Schema
=====================

Typed records produced by the schema normalizer and consumed by the HTML
renderer, the printable template builder and the web layer.

Coordinates are normalized to [0, 1] relative to the page, with the origin
at the top-left corner, exactly as Document AI reports them.

Serialized shape:
-----------------
{
  "template_id": string,
  "runtime_mode": "docai" | "html",
  "source": {"layout_processor_id", "form_processor_id", "location"},
  "instructions": string,
  "sections": [{"id", "title", "page_number", "y", "box"}],
  "fields": [{"id", "type", "name", "label", "inputType", "required",
              "confidence", "page_number", "y", "x", "label_box",
              "field_box", "valueType", "section_id"}],
  "page_count": number,
  "pages": [{"page_number", "width", "height"}],
  "printable": {"html", "css", "js"},      (optional)
  "ai_validation": {...}                   (optional)
}
"""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional


@dataclass
class BoundingBox:
    """Normalized box: top-left corner plus size."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def to_dict(self) -> Dict[str, float]:
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height
        }

    @classmethod
    def from_poly(cls, bounding_poly: Optional[Dict[str, Any]]) -> Optional['BoundingBox']:
        """
        Create from a Document AI boundingPoly.

        Prefers normalizedVertices (either key style), then absolute vertices.
        Missing vertex coordinates count as 0.

        Returns:
            The enclosing box, or None when the poly has no vertices
        """
        poly = bounding_poly or {}
        vertices = (
            poly.get('normalizedVertices')
            or poly.get('normalized_vertices')
            or poly.get('vertices')
            or []
        )
        if not vertices:
            return None
        xs = [float(v.get('x') or 0) for v in vertices]
        ys = [float(v.get('y') or 0) for v in vertices]
        return cls(
            x=min(xs),
            y=min(ys),
            width=max(0.0, max(xs) - min(xs)),
            height=max(0.0, max(ys) - min(ys))
        )


def _box_dict(box: Optional[BoundingBox]) -> Optional[Dict[str, float]]:
    return box.to_dict() if box else None


@dataclass
class SectionRecord:
    """A section header detected in the layout."""
    id: str
    title: str
    page_number: int
    y: float
    box: Optional[BoundingBox] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'page_number': self.page_number,
            'y': self.y,
            'box': _box_dict(self.box)
        }


@dataclass
class FieldRecord:
    """
    A single input field in reading order.

    `name` is the submission payload key and printable placeholder, so it
    must stay stable for identical input.
    """
    id: str
    name: str
    label: str
    input_type: str  # text | textarea | checkbox
    page_number: int
    y: float
    x: float
    required: bool = False
    confidence: Optional[float] = None
    label_box: Optional[BoundingBox] = None
    field_box: Optional[BoundingBox] = None
    value_type: Optional[str] = None
    section_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'type': 'field',
            'name': self.name,
            'label': self.label,
            'inputType': self.input_type,
            'required': self.required,
            'confidence': self.confidence,
            'page_number': self.page_number,
            'y': self.y,
            'x': self.x,
            'label_box': _box_dict(self.label_box),
            'field_box': _box_dict(self.field_box),
            'valueType': self.value_type,
            'section_id': self.section_id
        }


@dataclass
class Schema:
    """Canonical, ordered, section-aware form schema."""
    template_id: str
    runtime_mode: str = 'docai'
    source: Dict[str, Optional[str]] = field(default_factory=dict)
    instructions: str = ''
    sections: List[SectionRecord] = field(default_factory=list)
    fields: List[FieldRecord] = field(default_factory=list)
    page_count: int = 0
    pages: List[Dict[str, Any]] = field(default_factory=list)
    printable: Optional[Dict[str, str]] = None
    ai_validation: Optional[Dict[str, Any]] = None

    def section_by_id(self, section_id: Optional[str]) -> Optional[SectionRecord]:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            'template_id': self.template_id,
            'runtime_mode': self.runtime_mode,
            'source': dict(self.source),
            'instructions': self.instructions,
            'sections': [s.to_dict() for s in self.sections],
            'fields': [f.to_dict() for f in self.fields],
            'page_count': self.page_count,
            'pages': [dict(p) for p in self.pages]
        }
        if self.printable is not None:
            data['printable'] = dict(self.printable)
        if self.ai_validation is not None:
            data['ai_validation'] = self.ai_validation
        return data


@dataclass
class LabelMatch:
    """One PDF label and its closest generated label."""
    expected: str
    best_match: Optional[str]
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'expected': self.expected,
            'best_match': self.best_match,
            'score': round(self.score, 3)
        }


@dataclass
class ValidationReport:
    """Advisory comparison of generated labels against the PDF's own text."""
    pdf_label_count: int = 0
    ai_label_count: int = 0
    missing: List[LabelMatch] = field(default_factory=list)
    possible_typos: List[LabelMatch] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.missing or self.possible_typos)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pdf_label_count': self.pdf_label_count,
            'ai_label_count': self.ai_label_count,
            'missing': [m.to_dict() for m in self.missing],
            'possible_typos': [m.to_dict() for m in self.possible_typos]
        }


@dataclass
class RenderedForm:
    """HTML, CSS and JS for one rendered form."""
    html: str
    css: str
    js: str

    def to_dict(self) -> Dict[str, str]:
        return {'html': self.html, 'css': self.css, 'js': self.js}


@dataclass
class ConversionArtifact:
    """What every conversion strategy returns to the web layer."""
    react_code: str
    css_code: str
    schema: Dict[str, Any]
    explanation: str
    js_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'react_code': self.react_code,
            'css_code': self.css_code,
            'schema': self.schema,
            'explanation': self.explanation
        }
        if self.js_code is not None:
            data['js_code'] = self.js_code
        return data


@dataclass
class EditArtifact:
    """Updated code from an AI edit, with per-file line diffs against the previous code."""
    react_code: str
    css_code: str
    js_code: str
    changes_made: List[str]
    explanation: str
    diff: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'react_code': self.react_code,
            'css_code': self.css_code,
            'js_code': self.js_code,
            'changes_made': list(self.changes_made),
            'explanation': self.explanation,
            'diff': self.diff
        }
