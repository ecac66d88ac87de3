# src/dommirror/dom/stylesheet.py
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)


def split_rules(css_text: str) -> List[str]:
    """
    Splits style sheet text into its top-level rules.

    A rule ends at the brace that closes its block, or at a semicolon outside
    any block (e.g. @import, @charset). Comments are dropped; quoted strings
    are copied as-is so braces inside them do not count.
    """
    rules: List[str] = []
    current: List[str] = []
    depth = 0
    quote: Optional[str] = None
    i = 0
    n = len(css_text)

    while i < n:
        ch = css_text[i]

        if quote:
            current.append(ch)
            if ch == "\\" and i + 1 < n:
                current.append(css_text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue

        if css_text.startswith("/*", i):
            end = css_text.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        if ch in ("'", '"'):
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(depth - 1, 0)
            if depth == 0:
                current.append(ch)
                _flush(current, rules)
                i += 1
                continue
        elif ch == ";" and depth == 0:
            current.append(ch)
            _flush(current, rules)
            i += 1
            continue

        current.append(ch)
        i += 1

    _flush(current, rules)
    return rules


def _flush(buffer: List[str], rules: List[str]) -> None:
    text = "".join(buffer).strip()
    buffer.clear()
    if text:
        rules.append(text)


class CSSStyleSheet:
    """
    The computed rule list of one style-bearing node.

    Rules start out as the ones found in the node's text and can then be
    changed programmatically, without the markup reflecting it.
    """

    def __init__(self, source_text: str = ""):
        self.source_text = source_text
        self._rules: List[str] = split_rules(source_text)

    @property
    def rules(self) -> List[str]:
        return list(self._rules)

    def insert_rule(self, rule: str, index: int = 0) -> int:
        """Inserts a rule at `index` (like CSSOM insertRule) and returns that index."""
        rule = rule.strip()
        if not rule:
            raise ValueError("Cannot insert an empty rule.")
        if index < 0 or index > len(self._rules):
            raise IndexError(f"Rule index {index} out of range (0..{len(self._rules)}).")
        self._rules.insert(index, rule)
        logger.debug("Inserted rule at %d: %s", index, rule)
        return index

    def delete_rule(self, index: int) -> None:
        if index < 0 or index >= len(self._rules):
            raise IndexError(f"Rule index {index} out of range (0..{len(self._rules) - 1}).")
        del self._rules[index]

    def __repr__(self) -> str:
        return f"<CSSStyleSheet rules={len(self._rules)}>"
