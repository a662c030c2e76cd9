"""
Schema Normalizer
=================

Turns Document AI layout and form-parser output into the canonical Schema.

Stages:
-------
1. SECTIONS: header-like layout paragraphs and blocks
2. FORM FIELDS: form-parser formFields (primary source)
3. LABEL LINES: layout lines shaped like "Label:" / "Label ____",
   plus lines led by a checkbox glyph
4. ENTITIES: only when fewer than 5 fields were found
5. ORDERING: (page, row, x) with a 0.02 row tolerance
6. SECTION ASSIGNMENT: latest section at or above each field

Design Principles:
------------------
- Upstream JSON is an opaque tree. Every accessor here accepts both the
  camelCase and snake_case spelling of a key.
- Deterministic output: ids are sequential counters in reading order and
  names depend only on labels and traversal order.
- A line matching both the header and the label heuristic is a section.
"""

import logging
from typing import List, Dict, Any, Optional, Set, Tuple

from formgen.services.field_classifier import (
    FieldClassifier,
    collapse_whitespace,
    snake_case,
    unique_name,
)
from .schema import BoundingBox, FieldRecord, SectionRecord, Schema

logger = logging.getLogger(__name__)


def _get(node: Optional[Dict[str, Any]], camel: str, snake: Optional[str] = None) -> Any:
    """Read a key in either spelling."""
    if not isinstance(node, dict):
        return None
    value = node.get(camel)
    if value is None and snake:
        value = node.get(snake)
    return value


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _entity_page(entity: Dict[str, Any]) -> int:
    """1-based page of an entity's first page reference (proto3 JSON omits page 0)."""
    refs = _as_list(_get(_get(entity, 'pageAnchor', 'page_anchor'), 'pageRefs', 'page_refs'))
    if not refs or not isinstance(refs[0], dict):
        return 1
    try:
        return int(refs[0].get('page') or 0) + 1
    except (TypeError, ValueError):
        return 1


def _document(result: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Unwrap {'document': {...}} or accept the bare document."""
    if not isinstance(result, dict):
        return {}
    doc = result.get('document')
    return doc if isinstance(doc, dict) else result


def anchor_text(doc: Dict[str, Any], text_anchor: Optional[Dict[str, Any]]) -> str:
    """
    Resolve a text anchor against the document text.

    Segments with end <= start are ignored. Whitespace is collapsed.
    """
    full = str(doc.get('text') or '')
    segments = _as_list(_get(text_anchor, 'textSegments', 'text_segments'))
    if not segments:
        return ''
    pieces = []
    for segment in segments:
        try:
            start = int(_get(segment, 'startIndex', 'start_index') or 0)
            end = int(_get(segment, 'endIndex', 'end_index') or 0)
        except (TypeError, ValueError):
            continue
        if end > start:
            pieces.append(full[start:end])
    return collapse_whitespace(''.join(pieces))


def _layout_text(doc: Dict[str, Any], element: Dict[str, Any]) -> str:
    layout = _get(element, 'layout') or {}
    return anchor_text(doc, _get(layout, 'textAnchor', 'text_anchor'))


def _layout_box(element: Dict[str, Any]) -> Optional[BoundingBox]:
    layout = _get(element, 'layout') or {}
    return BoundingBox.from_poly(_get(layout, 'boundingPoly', 'bounding_poly'))


class SchemaNormalizer:
    """
    Builds a canonical Schema from Document AI results.

    Example usage:

        normalizer = SchemaNormalizer()
        schema = normalizer.normalize(layout_result, merged_form_result, template_id='form-1')
        payload = schema.to_dict()
    """

    ROW_TOLERANCE = 0.02
    ENTITY_FALLBACK_THRESHOLD = 5
    MAX_ENTITIES = 200

    def __init__(self, classifier: Optional[FieldClassifier] = None):
        self.classifier = classifier or FieldClassifier()

    def normalize(
        self,
        layout_result: Optional[Dict[str, Any]],
        form_result: Optional[Dict[str, Any]],
        template_id: str,
        instructions: str = '',
        source: Optional[Dict[str, Optional[str]]] = None
    ) -> Schema:
        """
        Normalize layout and form-parser output into a Schema.

        Args:
            layout_result: Layout processor result for the whole PDF
            form_result: Merged per-page form-parser result
            template_id: Caller's form/template id
            instructions: Echoed into the schema unchanged
            source: Processor ids and location used, for provenance

        Returns:
            Schema with sections and fields in reading order
        """
        layout_doc = _document(layout_result)
        form_doc = _document(form_result)
        layout_pages = _as_list(layout_doc.get('pages'))
        form_pages = _as_list(form_doc.get('pages'))

        sections = self._extract_sections(layout_doc, layout_pages)

        used: Set[str] = set()
        fields: List[FieldRecord] = []
        form_labels = self._form_fields(form_doc, form_pages, fields, used)
        self._label_line_fields(layout_doc, layout_pages, fields, used, form_labels)

        if len(fields) < self.ENTITY_FALLBACK_THRESHOLD:
            self._entity_fields(form_doc, fields, used)

        fields = self.sort_fields(fields)
        for index, record in enumerate(fields, start=1):
            record.id = f"field_{index:04d}"
        self.assign_sections(fields, sections)

        schema = Schema(
            template_id=template_id,
            runtime_mode='docai',
            source=dict(source or {}),
            instructions=instructions,
            sections=sections,
            fields=fields,
            page_count=max(len(layout_pages), len(form_pages)),
            pages=[self._page_info(index, page) for index, page in enumerate(layout_pages, start=1)]
        )
        if fields:
            schema.page_count = max(schema.page_count, max(f.page_number for f in fields))

        logger.info(
            f"Normalized schema for {template_id}: {len(sections)} sections, "
            f"{len(fields)} fields, {schema.page_count} pages"
        )
        return schema

    def _extract_sections(self, layout_doc: Dict[str, Any], pages: List[Dict[str, Any]]) -> List[SectionRecord]:
        """Stage 1: header-like paragraphs, then blocks, de-duplicated per page."""
        sections: List[SectionRecord] = []
        seen: Set[Tuple[int, str]] = set()

        for page_number, page in enumerate(pages, start=1):
            elements = _as_list(_get(page, 'paragraphs')) + _as_list(_get(page, 'blocks'))
            for element in elements:
                text = _layout_text(layout_doc, element)
                if not self.classifier.is_section_header(text):
                    continue
                title = self.classifier.clean_title(text)
                key = (page_number, title.lower())
                if not title or key in seen:
                    continue
                seen.add(key)
                box = _layout_box(element)
                sections.append(SectionRecord(
                    id='',
                    title=title,
                    page_number=page_number,
                    y=box.y if box else 0.0,
                    box=box
                ))

        sections.sort(key=lambda s: (s.page_number, s.y))
        for index, section in enumerate(sections, start=1):
            section.id = f"section_{index:04d}"
        return sections

    def _form_fields(
        self,
        form_doc: Dict[str, Any],
        pages: List[Dict[str, Any]],
        fields: List[FieldRecord],
        used: Set[str]
    ) -> Set[Tuple[int, str]]:
        """Stage 2: form-parser formFields. Returns (page, lowercase label) pairs emitted."""
        emitted: Set[Tuple[int, str]] = set()

        for page_number, page in enumerate(pages, start=1):
            for form_field in _as_list(_get(page, 'formFields', 'form_fields')):
                field_name = _get(form_field, 'fieldName', 'field_name') or {}
                field_value = _get(form_field, 'fieldValue', 'field_value') or {}
                anchor = _get(field_name, 'textAnchor', 'text_anchor') or {}

                raw_label = anchor.get('content') or anchor_text(form_doc, anchor)
                label = self.classifier.clean_form_label(raw_label)
                if not label or self.classifier.is_section_header(label):
                    continue

                value_type = _get(form_field, 'valueType', 'value_type')
                input_type = 'checkbox' if self.classifier.is_checkbox_value_type(value_type) else 'text'
                base = snake_case(label) or f"field_{len(fields) + 1}"
                label_box = BoundingBox.from_poly(_get(field_name, 'boundingPoly', 'bounding_poly'))

                confidence = field_name.get('confidence')
                if confidence is None:
                    confidence = field_value.get('confidence')

                fields.append(FieldRecord(
                    id='',
                    name=unique_name(base, used),
                    label=label,
                    input_type=input_type,
                    page_number=page_number,
                    y=label_box.y if label_box else 0.0,
                    x=label_box.x if label_box else 0.0,
                    confidence=confidence,
                    label_box=label_box,
                    field_box=BoundingBox.from_poly(_get(field_value, 'boundingPoly', 'bounding_poly')),
                    value_type=value_type
                ))
                emitted.add((page_number, label.lower()))

        return emitted

    def _label_line_fields(
        self,
        layout_doc: Dict[str, Any],
        pages: List[Dict[str, Any]],
        fields: List[FieldRecord],
        used: Set[str],
        form_labels: Set[Tuple[int, str]]
    ):
        """Stage 3: fill-in label lines and checkbox-glyph lines from the layout."""
        for page_number, page in enumerate(pages, start=1):
            for line in _as_list(_get(page, 'lines')):
                text = _layout_text(layout_doc, line)
                if not text or self.classifier.is_section_header(text):
                    continue

                box = _layout_box(line)
                option = self.classifier.checkbox_line_label(text)
                if option is not None:
                    label = self.classifier.clean_label(option) or option
                    base = snake_case(label)
                    if not base or (page_number, label.lower()) in form_labels:
                        continue
                    name = unique_name(base, used)
                    input_type = 'checkbox'
                else:
                    if not self.classifier.is_label_line(text):
                        continue
                    label = self.classifier.clean_label(text)
                    base = snake_case(label)
                    if not label or not base or base in used:
                        continue
                    used.add(base)
                    name = base
                    input_type = self.classifier.classify_input_type(label)

                fields.append(FieldRecord(
                    id='',
                    name=name,
                    label=label,
                    input_type=input_type,
                    page_number=page_number,
                    y=box.y if box else 0.0,
                    x=box.x if box else 0.0,
                    label_box=box
                ))

    def _entity_fields(self, form_doc: Dict[str, Any], fields: List[FieldRecord], used: Set[str]):
        """Stage 4: last-resort entities, skipping generic_entities."""
        entities = _as_list(form_doc.get('entities'))[:self.MAX_ENTITIES]
        added = 0
        for entity in entities:
            entity_type = str(entity.get('type') or '').strip()
            mention = str(_get(entity, 'mentionText', 'mention_text') or '').strip()
            label = collapse_whitespace(mention or entity_type)
            if not label or entity_type == 'generic_entities':
                continue

            base = snake_case(label) or f"field_{len(fields) + 1}"
            fields.append(FieldRecord(
                id='',
                name=unique_name(base, used),
                label=label,
                input_type='text',
                page_number=_entity_page(entity),
                y=0.0,
                x=0.0,
                confidence=entity.get('confidence')
            ))
            added += 1
        if added:
            logger.info(f"Few form fields detected; added {added} entity field(s)")

    @classmethod
    def sort_fields(cls, fields: List[FieldRecord]) -> List[FieldRecord]:
        """
        Order fields by page, then row, then x.

        Fields whose y is within ROW_TOLERANCE of a row's first field share
        that row and are ordered left to right.
        """
        ordered = sorted(fields, key=lambda f: (f.page_number, f.y, f.x))
        rows: List[List[FieldRecord]] = []
        for record in ordered:
            if rows:
                anchor = rows[-1][0]
                if anchor.page_number == record.page_number and abs(record.y - anchor.y) <= cls.ROW_TOLERANCE:
                    rows[-1].append(record)
                    continue
            rows.append([record])

        result = []
        for row in rows:
            result.extend(sorted(row, key=lambda f: f.x))
        return result

    @staticmethod
    def assign_sections(fields: List[FieldRecord], sections: List[SectionRecord]):
        """Give each field the latest section above it in reading order, or None."""
        for record in fields:
            best = None
            for section in sections:
                if section.page_number > record.page_number:
                    break
                if section.page_number < record.page_number or section.y <= record.y:
                    best = section
            record.section_id = best.id if best else None

    @staticmethod
    def _page_info(page_number: int, page: Dict[str, Any]) -> Dict[str, Any]:
        dimension = _get(page, 'dimension') or {}
        return {
            'page_number': page_number,
            'width': dimension.get('width'),
            'height': dimension.get('height')
        }
