"""Builders for Document AI shaped results used across tests."""


def poly(x, y, width=0.2, height=0.02):
    return {
        "normalizedVertices": [
            {"x": x, "y": y},
            {"x": x + width, "y": y},
            {"x": x + width, "y": y + height},
            {"x": x, "y": y + height},
        ]
    }


class DocBuilder:
    """Accumulates document text and hands out anchors into it."""

    def __init__(self, pages=1):
        self.text = ""
        self.pages = [{"pageNumber": n + 1, "dimension": {"width": 612, "height": 792}} for n in range(pages)]

    def anchor(self, content):
        start = len(self.text)
        self.text += content + "\n"
        return {"textSegments": [{"startIndex": str(start), "endIndex": str(start + len(content))}]}

    def _layout(self, content, x, y):
        return {"layout": {"textAnchor": self.anchor(content), "boundingPoly": poly(x, y)}}

    def paragraph(self, content, x=0.1, y=0.1, page=1):
        self.pages[page - 1].setdefault("paragraphs", []).append(self._layout(content, x, y))
        return self

    def line(self, content, x=0.1, y=0.1, page=1):
        self.pages[page - 1].setdefault("lines", []).append(self._layout(content, x, y))
        return self

    def form_field(self, label, value_type="text", x=0.1, y=0.2, page=1, confidence=0.9):
        self.pages[page - 1].setdefault("formFields", []).append({
            "fieldName": {
                "textAnchor": self.anchor(label),
                "boundingPoly": poly(x, y),
                "confidence": confidence,
            },
            "fieldValue": {"boundingPoly": poly(x + 0.25, y)},
            "valueType": value_type,
        })
        return self

    def result(self, **extra):
        document = {"text": self.text, "pages": self.pages}
        document.update(extra)
        return {"document": document}
