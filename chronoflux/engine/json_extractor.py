"""
Resilient JSON extraction from LLM output.

Model output nominally contains JSON but routinely wraps it in prose or
markdown fences and bends the grammar (``+5``, trailing commas, comments).
``extract_json`` tries, in order:

1. the whole text
2. the contents of each fenced code block
3. the first balanced ``{...}`` / ``[...]`` span, after sanitizing

It does not check the shape of the result; ``parse_model`` layers pydantic
validation on top for callers that expect a specific structure.
"""

import json
import re
from typing import Any, Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from chronoflux.errors import NoJsonFoundError, ResponseShapeError
from chronoflux.utils.logger import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_RE = re.compile(r"```[ \t]*[A-Za-z0-9_+-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)
_PLUS_NUMBER_RE = re.compile(r"([:\[,]\s*)\+(?=\d|\.\d)")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")

# Bounds the number of candidate spans tried in stage 3
MAX_SPAN_CANDIDATES = 20


def _try_parse(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def _split_strings(text: str) -> Iterator[tuple]:
    """Yield ``(is_string, chunk)`` pieces, strings including their quotes"""
    start = 0
    i = 0
    length = len(text)
    while i < length:
        if text[i] == '"':
            if i > start:
                yield False, text[start:i]
            j = i + 1
            while j < length:
                if text[j] == "\\":
                    j += 2
                    continue
                if text[j] == '"':
                    break
                j += 1
            yield True, text[i : j + 1]
            i = j + 1
            start = i
        else:
            i += 1
    if start < length:
        yield False, text[start:]


def strip_comments(text: str) -> str:
    """Remove ``//`` line and ``/* */`` block comments outside string literals"""
    out = []
    i = 0
    length = len(text)
    in_string = False
    while i < length:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def sanitize(text: str) -> str:
    """
    Repair the JSON grammar slips models commonly make.

    Strips comments, leading ``+`` on numbers and trailing commas before a
    closing bracket. String contents are left untouched.
    """
    text = strip_comments(text)
    pieces = []
    for is_string, chunk in _split_strings(text):
        if not is_string:
            chunk = _PLUS_NUMBER_RE.sub(r"\1", chunk)
        pieces.append((is_string, chunk))

    # Trailing commas may sit right before a closing bracket in the next chunk
    joined = []
    for is_string, chunk in pieces:
        joined.append(chunk if is_string else _TRAILING_COMMA_RE.sub(r"\1", chunk))
    return "".join(joined)


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index one past the bracket closing ``text[start]``, string-aware"""
    stack = []
    in_string = False
    i = start
    length = len(text)
    while i < length:
        ch = text[i]
        if in_string:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]":
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return i + 1
        i += 1
    return None


def _from_balanced_span(text: str) -> Optional[Any]:
    tried = 0
    for match in re.finditer(r"[{\[]", text):
        if tried >= MAX_SPAN_CANDIDATES:
            break
        tried += 1
        candidate = sanitize(text[match.start() :])
        end = _balanced_end(candidate, 0)
        if end is None:
            continue
        parsed = _try_parse(candidate[:end])
        if parsed is not None:
            return parsed
    return None


def extract_json(raw_text: str) -> Any:
    """
    Extract the JSON value embedded in ``raw_text``.

    Raises:
        NoJsonFoundError: if no stage yields valid JSON
    """
    if raw_text is None:
        raise NoJsonFoundError()
    text = raw_text.strip()
    if not text:
        raise NoJsonFoundError("Empty AI response")

    parsed = _try_parse(text)
    if parsed is not None:
        return parsed

    for fence in _FENCE_RE.finditer(text):
        body = fence.group(1).strip()
        parsed = _try_parse(body)
        if parsed is None:
            parsed = _try_parse(sanitize(body))
        if parsed is not None:
            logger.debug("[Parse] Extracted JSON from markdown code block")
            return parsed

    parsed = _from_balanced_span(text)
    if parsed is not None:
        logger.debug("[Parse] Extracted JSON from balanced span after sanitizing")
        return parsed

    logger.debug(
        "[Parse] No JSON found in AI response",
        extra={"component": "Parse", "preview": text[:300]},
    )
    raise NoJsonFoundError()


def parse_model(raw_text: str, model: Type[ModelT]) -> ModelT:
    """
    Extract JSON and validate it against ``model``.

    Raises:
        NoJsonFoundError: if no JSON is present
        ResponseShapeError: if the JSON does not fit the model
    """
    data = extract_json(raw_text)
    if not isinstance(data, dict):
        raise ResponseShapeError(
            f"Expected a JSON object for {model.__name__}, got {type(data).__name__}"
        )
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ResponseShapeError(f"Invalid {model.__name__}: {e}") from e
