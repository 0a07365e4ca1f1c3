"""Turn raw model output into a validated Plan.

Model replies are often wrapped in markdown fences, surrounded by prose or
sprinkled with JavaScript-style comments. Cleaning is done outside of string
literals only, so values such as ``mongodb://localhost`` survive intact.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List

from .errors import PlanParseError, UnsupportedOperation
from .models import ACTION_TYPES, Action, Plan, PlanContext, UnknownAction

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s?")
_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")


def strip_comments(text: str) -> str:
    out: List[str] = []
    i = 0
    in_string = False
    length = len(text)
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
            end = text.find("\n", i)
            i = length if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def clean_plan_text(text: str) -> str:
    text = _FENCE_RE.sub("", text)
    text = _ZERO_WIDTH_RE.sub("", text)
    return strip_comments(text).strip()


def extract_json_object(text: str) -> str:
    """Return the first balanced ``{...}`` span of ``text``."""
    start = text.find("{")
    if start == -1:
        raise PlanParseError("No JSON object found in model response")
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(text)):
        ch = text[idx]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : idx + 1]
    raise PlanParseError("Unbalanced JSON object in model response")


def validate_action(raw: Any, *, strict: bool = False) -> Action:
    if not isinstance(raw, dict):
        raise PlanParseError("Each action must be a JSON object")
    kind = str(raw.get("type", ""))
    action_cls = ACTION_TYPES.get(kind)
    if action_cls is None:
        if strict:
            raise UnsupportedOperation(f"Unsupported action type: {kind or '<missing>'}")
        logger.warning("Unsupported action type: %s", kind or "<missing>")
        return UnknownAction(type=kind, raw=raw)
    return action_cls.from_dict(raw)


def validate_plan(raw: Any, *, strict: bool = False) -> Plan:
    if not isinstance(raw, dict):
        raise PlanParseError("Plan must be a JSON object")
    actions = raw.get("actions")
    if not isinstance(actions, list):
        raise PlanParseError("Plan is missing an 'actions' list")
    ctx: Dict[str, Any] = raw.get("context") if isinstance(raw.get("context"), dict) else {}
    estimated = ctx.get("estimated_time")
    context = PlanContext(
        description=str(ctx.get("description") or ""),
        needs_monitoring=bool(ctx.get("needsMonitoring", False)),
        estimated_time=str(estimated) if estimated is not None else None,
    )
    return Plan(
        type=str(raw.get("type") or "composite"),
        actions=tuple(validate_action(a, strict=strict) for a in actions),
        context=context,
    )


def parse_plan(text: str, *, strict: bool = False) -> Plan:
    cleaned = clean_plan_text(text or "")
    body = extract_json_object(cleaned)
    try:
        raw = json.loads(body)
    except json.JSONDecodeError as exc:
        raise PlanParseError(f"Model response is not valid JSON: {exc}") from exc
    return validate_plan(raw, strict=strict)
