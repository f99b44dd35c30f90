# src/taskpilot/intent/resolver.py

"""
Intent resolution: free-form message -> Intent.

Two tiers:
1. Model-assisted: fixed prompt, near-deterministic decoding, first balanced
   JSON object in the reply. Accepted only with a known "type" and an object
   "parameters".
2. Rules: ordered (name, predicate, constructor) list over the lower-cased
   message. First match wins:
     create > list > complete > delete > update > schedule > analyze > suggest
   and "general" when nothing matches.

Any tier-1 failure (capability unavailable, no JSON, bad schema) is logged and
falls through to tier 2. resolve() never raises.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from ..core.ports import TextGenerator
from ..llm.result import Ok
from .models import Intent, IntentType

logger = logging.getLogger(__name__)

INTENT_MAX_TOKENS = 200
INTENT_TEMPERATURE = 0.1

INTENT_PROMPT_TEMPLATE = """Analyze this user message and return ONLY a valid JSON object.

Message: "{message}"

Return format:
{{"type": "intent_type", "parameters": {{...}}}}

Valid types: {types}

Parameters by type:
- create_task: title (required), description, priority (high|medium|low), due_date (ISO date), tags
- list_tasks: status (pending|in_progress|completed|cancelled), priority, limit
- update_task: task_id (required), plus any of title, description, priority, status, due_date, tags
- complete_task / delete_task: task_id (required)

Examples:
"Create a task to buy milk" -> {{"type":"create_task","parameters":{{"title":"buy milk"}}}}
"Show pending tasks" -> {{"type":"list_tasks","parameters":{{"status":"pending"}}}}
"Complete task 3" -> {{"type":"complete_task","parameters":{{"task_id":3}}}}

Return ONLY the JSON, no explanation:"""


def build_intent_prompt(message: str) -> str:
    types = ", ".join(t.value for t in IntentType)
    return INTENT_PROMPT_TEMPLATE.format(message=message, types=types)


# --------------------------------------------------------------------------------------
# Tier 1 helpers
# --------------------------------------------------------------------------------------


def _balanced_end(text: str, start: int) -> int | None:
    """Index just past the '}' closing the '{' at `start` (string-aware)."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
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
                return i + 1
    return None


def extract_first_json_object(text: str) -> dict[str, Any] | None:
    """
    Return the first balanced {...} span in `text` that parses as a JSON object.

    The reply may wrap the JSON in prose or code fences; spans that are
    unbalanced or not valid JSON are skipped.
    """
    if not text:
        return None
    pos = text.find("{")
    while pos != -1:
        end = _balanced_end(text, pos)
        if end is not None:
            try:
                val = json.loads(text[pos:end])
            except ValueError:
                val = None
            if isinstance(val, dict):
                return val
        pos = text.find("{", pos + 1)
    return None


def _coerce_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        m = re.search(r"\d+", raw)
        if m:
            return int(m.group(0))
    return None


def normalize_parameters(params: dict[str, Any]) -> dict[str, Any]:
    """Drop nulls and coerce numeric fields the engine relies on."""
    out: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if key in ("task_id", "limit"):
            n = _coerce_int(value)
            if n is None:
                logger.debug("Dropping non-integer %s=%r from intent parameters", key, value)
                continue
            out[key] = n
        elif key in ("priority", "status") and isinstance(value, str):
            out[key] = value.strip().lower()
        else:
            out[key] = value
    return out


def parse_model_reply(text: str) -> Intent | None:
    obj = extract_first_json_object(text)
    if obj is None:
        return None
    intent_type = IntentType.parse(obj.get("type"))
    params = obj.get("parameters")
    if intent_type is None or not isinstance(params, dict):
        return None
    return Intent(intent_type, normalize_parameters(params))


# --------------------------------------------------------------------------------------
# Tier 2 rules
# --------------------------------------------------------------------------------------

_ID_RE = re.compile(r"\b(\d+)\b")
_TITLE_RE = re.compile(r"(?:create|add)(?:\s+(?:a|the))?\s+task(?:\s+to)?\s+(.+)", re.IGNORECASE | re.DOTALL)

_CREATE_RE = re.compile(r"\b(create|add|new task)\b")
_LIST_RE = re.compile(r"\b(list|show|display)\b")
_COMPLETE_RE = re.compile(r"\b(complete|completed|done|finish|finished|mark as completed)\b")
_DELETE_RE = re.compile(r"\b(delete|remove)\b")
_UPDATE_RE = re.compile(r"\b(update|change|edit)\b")
_SCHEDULE_RE = re.compile(r"\bschedule\b")
_ANALYZE_RE = re.compile(r"\b(analy[zs]e|report|stats|insights)\b")
_SUGGEST_RE = re.compile(r"\b(suggest|recommend|what should i work)\b")


def _extract_task_id(text: str) -> int | None:
    m = _ID_RE.search(text)
    return int(m.group(1)) if m else None


# Precedence when several priority words appear in one message. Updates apply
# each word in turn (high, medium, low), so the last applied wins.
_FIND_PRIORITY_ORDER = ("high", "low", "medium")
_UPDATE_PRIORITY_ORDER = ("low", "medium", "high")


def _extract_priority(text: str, order: tuple[str, ...] = _FIND_PRIORITY_ORDER) -> str | None:
    for word in order:
        if re.search(rf"\b{word}\b", text):
            return word
    return None


def _with_id(text: str, **extra: Any) -> dict[str, Any]:
    params: dict[str, Any] = {}
    task_id = _extract_task_id(text)
    if task_id is not None:
        params["task_id"] = task_id
    params.update({k: v for k, v in extra.items() if v is not None})
    return params


def _build_create(text: str, original: str) -> Intent:
    m = _TITLE_RE.search(original)
    title = m.group(1).strip() if m else original.strip()
    params: dict[str, Any] = {"title": title}
    priority = _extract_priority(text)
    if priority:
        params["priority"] = priority
    return Intent(IntentType.CREATE_TASK, params)


def _build_list(text: str, original: str) -> Intent:
    params: dict[str, Any] = {}
    if re.search(r"\bpending\b", text):
        params["status"] = "pending"
    elif re.search(r"\bcompleted?\b", text):
        params["status"] = "completed"
    priority = _extract_priority(text)
    if priority:
        params["priority"] = priority
    return Intent(IntentType.LIST_TASKS, params)


def _build_complete(text: str, original: str) -> Intent:
    return Intent(IntentType.COMPLETE_TASK, _with_id(text))


def _build_delete(text: str, original: str) -> Intent:
    return Intent(IntentType.DELETE_TASK, _with_id(text))


def _build_update(text: str, original: str) -> Intent:
    return Intent(IntentType.UPDATE_TASK, _with_id(text, priority=_extract_priority(text, _UPDATE_PRIORITY_ORDER)))


def _matches(pattern: re.Pattern[str]) -> Callable[[str], bool]:
    return lambda text: pattern.search(text) is not None


Rule = tuple[str, Callable[[str], bool], Callable[[str, str], Intent]]

RULES: list[Rule] = [
    ("create", _matches(_CREATE_RE), _build_create),
    ("list", _matches(_LIST_RE), _build_list),
    ("complete", _matches(_COMPLETE_RE), _build_complete),
    ("delete", _matches(_DELETE_RE), _build_delete),
    ("update", _matches(_UPDATE_RE), _build_update),
    ("schedule", _matches(_SCHEDULE_RE), lambda t, o: Intent(IntentType.SCHEDULE_TASKS, {})),
    ("analyze", _matches(_ANALYZE_RE), lambda t, o: Intent(IntentType.ANALYZE_PRODUCTIVITY, {})),
    ("suggest", _matches(_SUGGEST_RE), lambda t, o: Intent(IntentType.GET_SUGGESTIONS, {"context": "today"})),
]


def resolve_with_rules(message: str) -> Intent:
    original = str(message or "")
    text = original.lower()
    for name, predicate, build in RULES:
        if predicate(text):
            logger.debug("Rule %s matched", name)
            return build(text, original)
    return Intent.general()


# --------------------------------------------------------------------------------------
# Resolver
# --------------------------------------------------------------------------------------


class IntentResolver:
    def __init__(self, generator: TextGenerator | None = None) -> None:
        self._generator = generator

    def _resolve_with_model(self, message: str) -> Intent | None:
        if self._generator is None:
            return None
        result = self._generator.generate(
            build_intent_prompt(message),
            max_tokens=INTENT_MAX_TOKENS,
            temperature=INTENT_TEMPERATURE,
        )
        if not isinstance(result, Ok):
            logger.info("Intent model unavailable (%s), using rules", result.reason)
            return None
        intent = parse_model_reply(result.value)
        if intent is None:
            logger.info("Intent model reply not usable, using rules: %.200r", result.value)
        return intent

    def resolve(self, message: str) -> Intent:
        try:
            intent = self._resolve_with_model(message)
        except Exception:
            logger.exception("Intent model tier crashed, using rules")
            intent = None
        if intent is not None:
            logger.debug("Intent (model) type=%s params=%s", intent.type.value, intent.parameters)
            return intent
        intent = resolve_with_rules(message)
        logger.debug("Intent (rules) type=%s params=%s", intent.type.value, intent.parameters)
        return intent
