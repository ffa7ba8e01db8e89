"""Keyword classification of free-text requests.

``INTENT_RULES`` is evaluated top to bottom and the first match wins, so
overlapping messages are resolved by position in that tuple. For example
"approve US-007" is an approval, not a story start. Anything unmatched is
a custom task; classification never fails.
"""

import re
from dataclasses import dataclass
from typing import Callable, Optional, Pattern, Tuple

from ..models.intent import Intent, IntentType
from ..models.state import Reason

APPROVE_PATTERN = re.compile(r"^(approved|approve|核准|lgtm|通過|ok\s*$)", re.IGNORECASE)
APPROVE_PREFIX = re.compile(r"^(approved|approve|核准|lgtm|通過|ok)\s*", re.IGNORECASE)
REJECT_PREFIX = re.compile(r"^(rejected|reject|退回|不行)\s*", re.IGNORECASE)
STORY_PATTERNS = (
    re.compile(r"(?:start\s*story|開始\s*story|開新\s*story|start)\s+(US-\d+)", re.IGNORECASE),
    re.compile(r"^(US-\d+)", re.IGNORECASE),
)
LIST_PATTERN = re.compile(r"列出|list.*project|所有專案|all\s*projects")
DETECT_PATTERN = re.compile(r"framework|有沒有用|adoption|detect")
CONTINUE_PATTERN = re.compile(
    r"^(繼續|continue|dispatch|next|下一步|run|執行|go|proceed)\s*$", re.IGNORECASE
)

# Read-only information requests, matched against the lowercased message
QUERY_PATTERNS: Tuple[Pattern, ...] = tuple(re.compile(p) for p in (
    r"狀態", r"status", r"什麼步驟", r"what\s*step", r"which\s*step",
    r"測試", r"tests?", r"進度", r"progress",
    r"還有什麼", r"what's\s*next", r"what\s*next", r"what's\s*left",
    r"history", r"歷史", r"上次", r"last\s*(session|time)",
    r"怎麼樣", r"how.*project", r"how.*going",
    r"目前", r"current", r"看一下", r"看看", r"查一下", r"check\s*status",
    r"哪個步驟", r"卡住", r"blocked", r"why.*block",
    r"summary", r"摘要", r"report", r"報告",
    r"打開", r"open\s*project",
))

# Checked in order; the first keyword found in a rejection decides the reason
REJECT_KEYWORDS: Tuple[Tuple[str, Reason], ...] = (
    ("clarification", Reason.NEEDS_CLARIFICATION),
    ("需要說明", Reason.NEEDS_CLARIFICATION),
    ("不清楚", Reason.NEEDS_CLARIFICATION),
    ("constitution", Reason.CONSTITUTION_VIOLATION),
    ("架構違反", Reason.CONSTITUTION_VIOLATION),
    ("scope", Reason.SCOPE_WARNING),
    ("範圍", Reason.SCOPE_WARNING),
    ("nfr", Reason.NFR_MISSING),
    ("timeout", Reason.TEST_TIMEOUT),
    ("超時", Reason.TEST_TIMEOUT),
)
DEFAULT_REJECT_REASON = Reason.NEEDS_CLARIFICATION


@dataclass(frozen=True)
class IntentRule:
    """One entry of the ordered rule list."""
    intent: IntentType
    match: Callable[[str], Optional[Intent]]


def extract_reject_reason(rest: str) -> Tuple[Reason, Optional[str]]:
    """Find the rejection reason keyword and return (reason, remaining note)."""
    lowered = rest.lower()
    for keyword, reason in REJECT_KEYWORDS:
        if keyword in lowered:
            note = re.sub(re.escape(keyword), "", rest, count=1, flags=re.IGNORECASE).strip()
            return reason, note or None
    return DEFAULT_REJECT_REASON, rest or None


def _match_approve(message: str) -> Optional[Intent]:
    if not APPROVE_PATTERN.search(message):
        return None
    note = APPROVE_PREFIX.sub("", message, count=1).strip()
    return Intent(IntentType.APPROVE, note=note or None)


def _match_reject(message: str) -> Optional[Intent]:
    if not REJECT_PREFIX.search(message):
        return None
    rest = REJECT_PREFIX.sub("", message, count=1).strip()
    reason, note = extract_reject_reason(rest)
    return Intent(IntentType.REJECT, reason=reason, note=note)


def _match_start_story(message: str) -> Optional[Intent]:
    for pattern in STORY_PATTERNS:
        match = pattern.search(message)
        if match:
            return Intent(IntentType.START_STORY, unit_id=match.group(1).upper())
    return None


def _match_list(message: str) -> Optional[Intent]:
    if LIST_PATTERN.search(message.lower()):
        return Intent(IntentType.LIST)
    return None


def _match_detect(message: str) -> Optional[Intent]:
    if DETECT_PATTERN.search(message.lower()):
        return Intent(IntentType.DETECT)
    return None


def _match_query(message: str) -> Optional[Intent]:
    lowered = message.lower()
    if any(pattern.search(lowered) for pattern in QUERY_PATTERNS):
        return Intent(IntentType.QUERY)
    return None


def _match_continue(message: str) -> Optional[Intent]:
    if CONTINUE_PATTERN.search(message):
        return Intent(IntentType.CONTINUE)
    return None


INTENT_RULES: Tuple[IntentRule, ...] = (
    IntentRule(IntentType.APPROVE, _match_approve),
    IntentRule(IntentType.REJECT, _match_reject),
    # Before query: "start US-007" is not a status request
    IntentRule(IntentType.START_STORY, _match_start_story),
    IntentRule(IntentType.LIST, _match_list),
    IntentRule(IntentType.DETECT, _match_detect),
    IntentRule(IntentType.QUERY, _match_query),
    IntentRule(IntentType.CONTINUE, _match_continue),
)


def classify(message: str) -> Intent:
    """Classify a free-text request into an Intent."""
    text = message.strip()
    for rule in INTENT_RULES:
        intent = rule.match(text)
        if intent is not None:
            return intent
    return Intent(IntentType.CUSTOM, instruction=text)
