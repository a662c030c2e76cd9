"""
Label validator for model-generated forms.

Compares the labels in generated HTML with label-like lines from the PDF's
own text layer, using Dice similarity over character bigrams. The report is
advisory and attached to the schema; nothing here raises.
"""
import html
import logging
import re
from collections import Counter
from typing import List, Optional, Tuple

from .schema import LabelMatch, ValidationReport

logger = logging.getLogger(__name__)

_LABEL_TAGS = re.compile(r'<(label|h1|h2|h3|legend)\b[^>]*>(.*?)</\1\s*>', re.IGNORECASE | re.DOTALL)
_ANY_TAG = re.compile(r'<[^>]+>')
_WS = re.compile(r'\s+')
_NON_ALNUM = re.compile(r'[^a-z0-9]+')
_COLON_LABEL = re.compile(r'^(.+?)\s*:\s*$')
_URL = re.compile(r'(https?://|www\.)', re.IGNORECASE)
_DIGIT_RUN = re.compile(r'\d{5,}')


def normalize_label(text: Optional[str]) -> str:
    """Lowercase, non-alphanumerics to single spaces, trimmed."""
    return _NON_ALNUM.sub(' ', (text or '').lower()).strip()


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_similarity(a: str, b: str) -> float:
    """Dice coefficient over character-bigram multisets of two normalized strings."""
    if a == b:
        return 1.0
    left, right = _bigrams(a), _bigrams(b)
    total = sum(left.values()) + sum(right.values())
    if total == 0:
        return 0.0
    overlap = sum((left & right).values())
    return 2.0 * overlap / total


class LabelValidator:
    """Finds PDF labels missing from, or misspelled in, generated HTML."""

    MISSING_THRESHOLD = 0.72
    MATCH_THRESHOLD = 0.9
    MIN_LINE_LENGTH = 6
    MAX_LINE_LENGTH = 80
    MIN_ALPHA_RATIO = 0.6

    def validate(self, html_text: str, pdf_lines: List[str]) -> ValidationReport:
        """
        Compare generated labels with PDF label candidates.

        Args:
            html_text: Generated form HTML
            pdf_lines: Text lines from the PDF

        Returns:
            ValidationReport with missing and possible-typo entries
        """
        ai_labels = self.scrape_labels(html_text)
        pdf_labels = self.pdf_candidates(pdf_lines)
        report = ValidationReport(pdf_label_count=len(pdf_labels), ai_label_count=len(ai_labels))

        normalized_ai = [(label, normalize_label(label)) for label in ai_labels]
        for expected in pdf_labels:
            best_match, score = self._best_match(normalize_label(expected), normalized_ai)
            if score < self.MISSING_THRESHOLD:
                report.missing.append(LabelMatch(expected, best_match, score))
            elif score < self.MATCH_THRESHOLD:
                report.possible_typos.append(LabelMatch(expected, best_match, score))

        if report.has_warnings:
            logger.warning(
                f"Label validation: {len(report.missing)} missing, "
                f"{len(report.possible_typos)} possible typos out of {len(pdf_labels)} PDF labels"
            )
        return report

    @staticmethod
    def scrape_labels(html_text: str) -> List[str]:
        """Inner text of label, h1-h3 and legend elements, de-duplicated by normalized form."""
        labels = []
        seen = set()
        for _, inner in _LABEL_TAGS.findall(html_text or ''):
            text = _WS.sub(' ', html.unescape(_ANY_TAG.sub(' ', inner))).strip()
            key = normalize_label(text)
            if not key or key in seen:
                continue
            seen.add(key)
            labels.append(text)
        return labels

    def pdf_candidates(self, lines: List[str]) -> List[str]:
        """Keep 'Label:' prefixes and short mostly-alphabetic lines that are not URLs or numbers."""
        candidates = []
        seen = set()
        for raw in lines or []:
            line = _WS.sub(' ', raw or '').strip()
            if not line:
                continue
            match = _COLON_LABEL.match(line)
            if match:
                candidate = match.group(1).strip()
            elif self._is_text_line(line):
                candidate = line
            else:
                continue
            key = normalize_label(candidate)
            if not key or key in seen:
                continue
            seen.add(key)
            candidates.append(candidate)
        return candidates

    def _is_text_line(self, line: str) -> bool:
        if not self.MIN_LINE_LENGTH <= len(line) <= self.MAX_LINE_LENGTH:
            return False
        if _URL.search(line) or _DIGIT_RUN.search(line):
            return False
        visible = [ch for ch in line if not ch.isspace()]
        letters = sum(1 for ch in visible if ch.isalpha())
        return bool(visible) and letters / len(visible) >= self.MIN_ALPHA_RATIO

    @staticmethod
    def _best_match(expected: str, normalized_ai: List[Tuple[str, str]]) -> Tuple[Optional[str], float]:
        best_label, best_score = None, 0.0
        for label, normalized in normalized_ai:
            score = dice_similarity(expected, normalized)
            if score > best_score:
                best_label, best_score = label, score
        return best_label, best_score
