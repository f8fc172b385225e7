"""
json_recovery.py — Recover a JSON object from free-form model output
====================================================================
Language models asked for "JSON only" still wrap it in markdown fences,
prepend a sentence, or trail an explanation.  recover_json() runs an ordered
chain of pure parse strategies and returns the first success:

  1. direct          parse the stripped response as-is
  2. strip_fences    remove ```json / ``` markers, keep their content
  3. drop_fenced     remove fenced blocks entirely (prose-wrapped JSON)
  4. regex_object    first ``{ … }`` span matched by a regex
  5. brace_slice     slice from the first ``{`` to the last ``}``

Each strategy raises ValueError (json.JSONDecodeError is one) on failure and
must return a JSON *object*; arrays and scalars count as failures because
every document LearnPath asks for is an object.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable

ParseStrategy = Callable[[str], dict[str, Any]]

_FENCE_MARKER = re.compile(r"```(?:json|JSON)?[ \t]*")
_FENCED_BLOCK = re.compile(r"```[\s\S]*?```")
_OBJECT_SPAN  = re.compile(r"\{[\s\S]*\}")


def _as_object(text: str) -> dict[str, Any]:
    value = json.loads(text.strip())
    if not isinstance(value, dict):
        raise ValueError(f"expected a JSON object, got {type(value).__name__}")
    return value


def parse_direct(content: str) -> dict[str, Any]:
    return _as_object(content)


def parse_strip_fences(content: str) -> dict[str, Any]:
    return _as_object(_FENCE_MARKER.sub("", content))


def parse_drop_fenced(content: str) -> dict[str, Any]:
    cleaned = _FENCED_BLOCK.sub("", content).replace("```", "")
    return _as_object(cleaned)


def parse_regex_object(content: str) -> dict[str, Any]:
    match = _OBJECT_SPAN.search(content)
    if not match:
        raise ValueError("no JSON object found")
    return _as_object(match.group(0))


def parse_brace_slice(content: str) -> dict[str, Any]:
    start = content.find("{")
    end   = content.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no valid JSON structure found")
    return _as_object(content[start:end + 1])


PARSE_STRATEGIES: list[tuple[str, ParseStrategy]] = [
    ("direct",       parse_direct),
    ("strip_fences", parse_strip_fences),
    ("drop_fenced",  parse_drop_fenced),
    ("regex_object", parse_regex_object),
    ("brace_slice",  parse_brace_slice),
]


@dataclass
class ParseOutcome:
    data:     dict[str, Any]
    strategy: str                                  # name of the winning strategy
    failed:   list[str] = field(default_factory=list)


class JSONRecoveryError(ValueError):
    """Every strategy failed."""

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        self.failures = failures
        detail = "; ".join(f"{name}: {err}" for name, err in failures)
        super().__init__(f"all JSON parse strategies failed ({detail})")


def recover_json(
    content: str,
    strategies: list[tuple[str, ParseStrategy]] | None = None,
) -> ParseOutcome:
    """Return the first successful parse of *content*; raise JSONRecoveryError otherwise."""
    failures: list[tuple[str, str]] = []
    for name, strategy in strategies or PARSE_STRATEGIES:
        try:
            data = strategy(content or "")
        except ValueError as exc:
            failures.append((name, str(exc)))
            continue
        return ParseOutcome(data=data, strategy=name, failed=[n for n, _ in failures])
    raise JSONRecoveryError(failures)
