"""
Provider response normalizer.

Turns the free-form text a chat model returns into one of our fixed result
schemas. Cleanup is permissive (markdown fences, ``//`` comments, trailing
commas, prose around the JSON object); validation is strict only about the
schema's required-field contract. Everything else is coerced: unknown keys
are dropped, missing or mistyped optional values fall back to defaults and
scores are clamped into range.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Any, ClassVar, Iterable, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from insight.services.errors import ResponseParseError

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

EXCERPT_LENGTH = 200


@dataclass(frozen=True)
class ParseFailure:
    """Why a provider response could not be used."""

    reason: str
    excerpt: str = ""


class LenientModel(BaseModel):
    """Base for result schemas: camelCase on the wire, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # JSON key -> accepted types; checked on the raw document before validation
    REQUIRED: ClassVar[dict[str, tuple[type, ...]]] = {}

    @classmethod
    def default_for(cls, field_name: str) -> Any:
        return cls.model_fields[field_name].get_default(call_default_factory=True)

    def is_usable(self) -> bool:
        """Post-validation check; a model that is not usable counts as a parse failure."""
        return True

    def to_payload(self) -> dict[str, Any]:
        """Wire/cache representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


M = TypeVar("M", bound=LenientModel)


# Field coercion helpers, used from field validators on the schemas


def clamp_number(
    value: Any, default: float, low: float = 0, high: float = 100
) -> float:
    """Numbers (or numeric strings) clamped into [low, high]; anything else -> default."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return default
    if isinstance(value, int):
        # Arbitrarily large JSON integers do not fit a float
        return min(high, max(low, value))
    if not isinstance(value, float) or not math.isfinite(value):
        return default
    return min(high, max(low, value))


def clamp_score(value: Any, default: int) -> int:
    return int(round(clamp_number(value, default)))


def coerce_bool(value: Any, default: bool | None) -> bool | None:
    return value if isinstance(value, bool) else default


def coerce_str(value: Any, default: str | None) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def coerce_str_list(value: Any, default: list[str] | None) -> list[str] | None:
    if not isinstance(value, list):
        return default
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def coerce_choice(value: Any, allowed: Iterable[str], default: str | None) -> str | None:
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in allowed:
            return normalized
    return default


# Text cleanup


def _strip_line_comments(text: str) -> str:
    """Remove ``// ...`` comments that sit outside JSON strings."""
    out: list[str] = []
    in_string = False
    escaped = False
    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
        elif ch == "/" and text.startswith("//", i):
            newline = text.find("\n", i)
            if newline == -1:
                break
            i = newline
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def clean_json_text(text: str) -> str:
    """Best-effort repair of a model's JSON answer."""
    cleaned = text.strip()

    # Handle markdown code blocks
    blocks = _FENCED_BLOCK.findall(cleaned)
    if blocks:
        cleaned = blocks[-1].strip()
    elif cleaned.startswith("```"):
        cleaned = re.sub(r"^```(?:json|JSON)?", "", cleaned).strip()

    cleaned = _strip_line_comments(cleaned)

    # Skip prose before / after the top-level object
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return _TRAILING_COMMA.sub(r"\1", cleaned).strip()


def extract_document(text: str) -> dict[str, Any]:
    """
    Parse a provider answer into a JSON object.

    Raises:
        ResponseParseError: If no JSON object can be recovered
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty response text")

    cleaned = clean_json_text(text)
    try:
        document = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise ResponseParseError(
            f"Expected a JSON object, got {type(document).__name__}"
        )
    return document


def _check_required(document: dict[str, Any], schema: type[LenientModel]) -> str | None:
    for key, types in schema.REQUIRED.items():
        value = document.get(key)
        # bool is an int subclass; never accept it where a number is required
        if bool not in types and isinstance(value, bool):
            return f"Field '{key}' has wrong type bool"
        if not isinstance(value, types):
            kind = "missing" if key not in document else f"wrong type {type(value).__name__}"
            return f"Field '{key}' {kind}"
    return None


def normalize(text: str, schema: type[M]) -> M | ParseFailure:
    """Map a provider answer onto ``schema`` or explain why it cannot be."""
    excerpt = (text or "")[:EXCERPT_LENGTH]

    try:
        document = extract_document(text)
    except ResponseParseError as e:
        return ParseFailure(str(e), excerpt)

    return validate_document(document, schema, excerpt)


def validate_document(
    document: dict[str, Any], schema: type[M], excerpt: str = ""
) -> M | ParseFailure:
    """Validate an already-decoded JSON object against ``schema``."""
    problem = _check_required(document, schema)
    if problem:
        return ParseFailure(problem, excerpt)

    try:
        result = schema.model_validate(document)
    except ValidationError as e:
        return ParseFailure(f"Schema validation failed: {e.error_count()} errors", excerpt)

    if not result.is_usable():
        return ParseFailure("Response carried no usable content", excerpt)
    return result
