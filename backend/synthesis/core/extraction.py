"""
Structured-Output Extraction - Tolerant parsing of oracle responses

An ordered list of pure strategies; the first success wins:
1. Raw parse
2. Strip leading/trailing code fences, then parse
3. Largest balanced {...} span that parses and carries the expected key

When every strategy fails the result says "unparseable". It never
degrades to "no changes".
"""
import json
import re
from typing import Any, Callable, List, Optional, Tuple

from pydantic import BaseModel, Field

LEADING_FENCE = re.compile(r"^\s*```[\w+-]*[ \t]*\n?")
TRAILING_FENCE = re.compile(r"\n?```\s*$")


class ExtractionResult(BaseModel):
    """Tagged result of extraction"""
    ok: bool
    strategy: Optional[str] = Field(None, description="raw, fenced or brace-span")
    document: Any = Field(None)
    error: Optional[str] = Field(None)

    @classmethod
    def unparseable(cls, reason: str) -> "ExtractionResult":
        return cls(ok=False, error=f"unparseable: {reason}")


def _has_key(document: Any, expected_key: Optional[str]) -> bool:
    if expected_key is None:
        return True
    return isinstance(document, dict) and expected_key in document


def parse_raw(text: str, expected_key: Optional[str]) -> Optional[Any]:
    try:
        document = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    # A bare list of file entries is accepted as-is
    if isinstance(document, list) or _has_key(document, expected_key):
        return document
    return None


def parse_fenced(text: str, expected_key: Optional[str]) -> Optional[Any]:
    stripped = LEADING_FENCE.sub("", text, count=1)
    stripped = TRAILING_FENCE.sub("", stripped, count=1)
    if stripped == text:
        return None
    return parse_raw(stripped.strip(), expected_key)


def balanced_spans(text: str) -> List[Tuple[int, int]]:
    """(start, end) of every top-level balanced {...} span, string-aware"""
    spans = []
    depth = 0
    start = None
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            # Quotes only matter inside a candidate span
            in_string = depth > 0
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append((start, index + 1))
    return spans


def parse_brace_span(text: str, expected_key: Optional[str]) -> Optional[Any]:
    spans = sorted(balanced_spans(text), key=lambda s: s[1] - s[0], reverse=True)
    for start, end in spans:
        try:
            document = json.loads(text[start:end])
        except json.JSONDecodeError:
            continue
        if _has_key(document, expected_key):
            return document
    return None


STRATEGIES: List[Tuple[str, Callable[[str, Optional[str]], Optional[Any]]]] = [
    ("raw", parse_raw),
    ("fenced", parse_fenced),
    ("brace-span", parse_brace_span),
]


def extract_structured(text: str, expected_key: Optional[str] = "files") -> ExtractionResult:
    """
    Extract a JSON document from oracle text

    Args:
        text: Raw oracle response
        expected_key: Top-level key the document must carry (None for any)

    Returns:
        ExtractionResult naming the strategy that succeeded, or unparseable
    """
    if text is None or not str(text).strip():
        return ExtractionResult.unparseable("empty response")

    for name, strategy in STRATEGIES:
        document = strategy(text, expected_key)
        if document is not None:
            return ExtractionResult(ok=True, strategy=name, document=document)

    return ExtractionResult.unparseable(f"no strategy produced a document with '{expected_key}'")


__all__ = ["ExtractionResult", "extract_structured", "balanced_spans"]
