"""
Label classification for text recovered from form layouts.
Decides whether a line is a section header, a field label or neither, and
which input type a label should render as.
"""
import logging
import re
from typing import Dict, List, Optional, Set

logger = logging.getLogger(__name__)

CHECKBOX_GLYPHS = '☐☑☒□■❑❒'

_NON_ALNUM = re.compile(r'[^a-z0-9]+')
_WS = re.compile(r'\s+')


def snake_case(text: str) -> str:
    """
    Convert a label to a field name.

    Lowercase, runs outside [a-z0-9] become '_', outer underscores stripped,
    truncated to 64 characters, then trailing underscores stripped again.
    """
    name = _NON_ALNUM.sub('_', (text or '').strip().lower()).strip('_')
    return name[:64].rstrip('_')


def unique_name(base: str, used: Set[str]) -> str:
    """Return base, or base_2, base_3, ... whichever is first unused, and claim it."""
    name = base
    suffix = 2
    while name in used:
        name = f"{base}_{suffix}"
        suffix += 1
    used.add(name)
    return name


def collapse_whitespace(text: Optional[str]) -> str:
    return _WS.sub(' ', text or '').strip()


class FieldClassifier:
    """Service for classifying layout text into headers, labels and input types."""

    # Section header patterns, checked in order
    # Text ending in a colon is never a header
    HEADER_PATTERNS: List[str] = [
        r'^(section|part|page)\s*\d*\s*[:\-–]?\s*',
        r'information$',
        r'history$',
        r'conditions$',
        r'details$',
        r'questionnaire$',
        r'evaluation$',
        r'^demographic',
        r'^contact',
        r'^provider',
        r'^patient',
        r'^medical',
        r'^health',
        r'^surgical',
        r'^allergic',
        r'^current\s+medications',
        r'^additional',
        r'^authorization',
        r'^sleep',
        r'^daytime',
        r'^nighttime',
    ]

    # Fill-in label shapes: "Name:", "Name: ____", "Name ______"
    LABEL_PATTERNS: List[str] = [
        r':\s*$',
        r':\s*_{2,}\s*$',
        r'_{4,}\s*$',
    ]

    # Input type by label keyword
    INPUT_TYPE_PATTERNS: Dict[str, str] = {
        'textarea': r'notes|description|explain|reason|comment',
    }

    MIN_HEADER_LENGTH = 3
    MAX_HEADER_LENGTH = 80
    MIN_LABEL_LENGTH = 2
    MAX_LABEL_LENGTH = 64
    ALL_CAPS_MIN_LENGTH = 10

    def __init__(self):
        """Initialize field classifier."""
        self.header_patterns = [re.compile(p, re.IGNORECASE) for p in self.HEADER_PATTERNS]
        self.label_patterns = [re.compile(p) for p in self.LABEL_PATTERNS]
        self.input_type_patterns = {
            input_type: re.compile(pattern, re.IGNORECASE)
            for input_type, pattern in self.INPUT_TYPE_PATTERNS.items()
        }
        self._trailing_colon = re.compile(r':\s*$')
        self._trailing_blank = re.compile(r'_{2,}\s*$')
        self._title_tail = re.compile(r'[:\-–]+$')
        logger.debug(f"Initialized FieldClassifier with {len(self.header_patterns)} header patterns")

    def is_section_header(self, text: Optional[str]) -> bool:
        """
        Check whether text looks like a section header rather than a field label.

        Args:
            text: Raw anchored text

        Returns:
            True for known header shapes or all-caps text longer than 10 characters
        """
        t = (text or '').strip()
        if len(t) < self.MIN_HEADER_LENGTH or len(t) > self.MAX_HEADER_LENGTH:
            return False
        if self._trailing_colon.search(t):
            return False

        for pattern in self.header_patterns:
            if pattern.search(t):
                return True

        return t == t.upper() and len(t) > self.ALL_CAPS_MIN_LENGTH and re.search(r'[A-Z]', t) is not None

    def is_label_line(self, text: Optional[str]) -> bool:
        """Check whether a layout line has the shape of a fill-in field label."""
        t = collapse_whitespace(text)
        if len(t) < self.MIN_LABEL_LENGTH or len(t) > self.MAX_LABEL_LENGTH:
            return False
        return any(pattern.search(t) for pattern in self.label_patterns)

    def clean_label(self, text: Optional[str]) -> str:
        """Strip trailing fill-in underscores and the trailing colon from a label line."""
        t = collapse_whitespace(text)
        t = self._trailing_blank.sub('', t)
        t = self._trailing_colon.sub('', t)
        return t.strip()

    def clean_form_label(self, text: Optional[str]) -> str:
        """Normalize a form-processor field name: collapse whitespace, drop trailing colons."""
        return collapse_whitespace(text).rstrip(': ').strip()

    def clean_title(self, text: Optional[str]) -> str:
        """Strip trailing colons and dashes from a section title."""
        return self._title_tail.sub('', (text or '').strip()).strip()

    def classify_input_type(self, label: str, default: str = 'text') -> str:
        """
        Pick an input type for a heuristic label.

        Args:
            label: Cleaned label text
            default: Type used when no keyword matches

        Returns:
            'textarea' for free-text prompts, otherwise default
        """
        for input_type, pattern in self.input_type_patterns.items():
            if pattern.search(label or ''):
                return input_type
        return default

    @staticmethod
    def is_checkbox_value_type(value_type: Optional[str]) -> bool:
        """Check a form-processor valueType for checkbox or selection marks."""
        vt = (value_type or '').lower()
        return 'checkbox' in vt or 'selection' in vt

    @staticmethod
    def checkbox_line_label(text: Optional[str]) -> Optional[str]:
        """
        Return the option label when a line starts with a checkbox glyph.

        "☐ Yes" gives "Yes". Lines without a leading glyph give None.
        """
        t = collapse_whitespace(text)
        if not t or t[0] not in CHECKBOX_GLYPHS:
            return None
        label = t.lstrip(CHECKBOX_GLYPHS + ' ').strip()
        return label or None
