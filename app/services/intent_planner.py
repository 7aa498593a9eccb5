"""Deterministic free-text intent -> OSLC query plan mapping."""

import re
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_OBJECT_STRUCTURE = "mxwo"
DEFAULT_PAGE = {"limit": 25, "offset": 0}

# First matching rule wins. Short abbreviations only match as whole words.
INTENT_RULES: List[Tuple["re.Pattern[str]", str]] = [
    (re.compile(r"asset"), "mxasset"),
    (re.compile(r"location"), "mxlocation"),
    (re.compile(r"inventory"), "mxinv"),
    (re.compile(r"service request|\bsrs?\b"), "mxsr"),
    (re.compile(r"job ?plan"), "mxjobplan"),
    (re.compile(r"preventive|\bpms?\b"), "mxpm"),
]


def object_structure_for_intent(intent: str) -> str:
    text = (intent or "").lower()
    for pattern, object_structure in INTENT_RULES:
        if pattern.search(text):
            return object_structure
    return DEFAULT_OBJECT_STRUCTURE


def plan_intent(intent: str, tenant_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Build a query plan for maximo.execute_query.

    The plan is a heuristic: object structure by keyword, every field
    selected, and only records with a status.
    """
    return {
        "tenantId": tenant_id,
        "objectStructure": object_structure_for_intent(intent),
        "select": ["*"],
        "where": [{"field": "status", "op": "notnull"}],
        "orderBy": [],
        "page": dict(DEFAULT_PAGE),
        "rationale": "Heuristic intent mapping (adjust in Settings / schema browser).",
    }
