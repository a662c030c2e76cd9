"""
Line diffs between two versions of form code, shown to the user after an AI edit.
"""
import difflib
from typing import List, Dict, Any


def generate_code_diff(old_code: str, new_code: str) -> List[Dict[str, Any]]:
    """
    Compare two code strings line by line.

    Entries are ordered as they appear in the new code:
      {'type': 'removed', 'line': n, 'content': ...}   n is the old line number
      {'type': 'added', 'line': n, 'content': ...}     n is the new line number
      {'type': 'changed', 'line': n, 'old': ..., 'new': ...}

    Args:
        old_code: Code before the edit
        new_code: Code after the edit

    Returns:
        List of diff entries, empty when the code is unchanged
    """
    old_lines = old_code.split('\n') if old_code else []
    new_lines = new_code.split('\n') if new_code else []
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    diff: List[Dict[str, Any]] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == 'equal':
            continue
        if tag == 'replace':
            # Pair lines up; the longer side leaves plain removals or additions
            paired = min(i2 - i1, j2 - j1)
            for k in range(paired):
                diff.append({'type': 'changed', 'line': j1 + k + 1, 'old': old_lines[i1 + k], 'new': new_lines[j1 + k]})
            i1 += paired
            j1 += paired
        for k in range(i1, i2):
            diff.append({'type': 'removed', 'line': k + 1, 'content': old_lines[k]})
        for k in range(j1, j2):
            diff.append({'type': 'added', 'line': k + 1, 'content': new_lines[k]})
    return diff
