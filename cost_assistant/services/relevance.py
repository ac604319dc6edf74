"""
services/relevance.py
---------------------
Decides whether a turn is on-topic for cloud cost discussion.

Two layers:
  1. is_off_topic(): a cheap keyword heuristic, always applied. A match with
     no file content short-circuits the turn with a fixed redirect reply.
  2. check_relevance(): optional LLM yes/no classification, one call per
     non-empty field, run concurrently. Enabled by RELEVANCE_LLM_CHECK.
"""

import asyncio
import re
from typing import Dict, Optional

from cost_assistant.core.config import settings
from cost_assistant.core.exceptions import LLMServiceError
from cost_assistant.core.logging import get_logger
from cost_assistant.services.llm_service import LLMService

logger = get_logger(__name__)

OFF_TOPIC_REDIRECT = (
    "I'm a cloud cost assistant, so I can only help with cloud spending, "
    "billing and usage. Ask me about your cloud bill, or upload a plan and "
    "usage metrics for an optimisation review."
)

_OFF_TOPIC_PATTERNS = [
    # weather
    r"\b(weather|forecast|temperature outside|raining|snowing|sunny)\b",
    # sports
    r"\b(football|soccer|basketball|baseball|cricket|tennis|nba|nfl|world cup|match score)\b",
    # politics
    r"\b(election|president|prime minister|politics|political|senate|congress|vote for)\b",
    # entertainment
    r"\b(movie|movies|film|netflix|tv show|celebrity|song|music|album|concert|video game)\b",
    # small talk
    r"\b(how are you|what'?s up|tell me a joke|who are you|what is your name)\b",
]
OFF_TOPIC_RE = re.compile("|".join(_OFF_TOPIC_PATTERNS), re.IGNORECASE)

_DOMAIN_RE = re.compile(
    r"\b(cloud|cost|costs|bill|billing|invoice|spend|spending|budget|aws|azure|gcp|"
    r"google cloud|cloudflare|ec2|s3|lambda|kubernetes|k8s|instance|instances|vm|"
    r"storage|egress|bandwidth|reserved|savings plan|pricing|usage|metrics|serverless)\b",
    re.IGNORECASE,
)

_CLASSIFIER_PROMPT = (
    "You classify text for a cloud cost optimisation assistant. "
    "Answer with exactly one word, yes or no: is the following text about "
    "cloud infrastructure, cloud billing, usage metrics or cost optimisation?"
)


def is_off_topic(text: Optional[str]) -> bool:
    """True when text matches a known off-topic pattern and no cloud vocabulary."""
    if not text or not text.strip():
        return False
    if _DOMAIN_RE.search(text):
        return False
    return bool(OFF_TOPIC_RE.search(text))


async def _classify(
    llm: LLMService, name: str, text: str, user_id: str
) -> Optional[bool]:
    """Returns the LLM's verdict, or None when it failed or answered neither way."""
    try:
        answer = await llm.complete(
            [
                {"role": "system", "content": _CLASSIFIER_PROMPT},
                {"role": "user", "content": text[:4000]},
            ],
            max_tokens=3,
            temperature=0.0,
            kind="relevance",
            user_id=user_id,
        )
    except LLMServiceError as exc:
        logger.warning("Relevance check failed", field=name, error=str(exc))
        return None

    verdict = answer.strip().lower()
    if verdict.startswith("yes"):
        return True
    if verdict.startswith("no"):
        return False
    return None


async def check_relevance(
    llm: LLMService,
    fields: Dict[str, Optional[str]],
    user_id: str = "unknown",
) -> bool:
    """
    Relevance flag for a turn built from several text fields
    (message, plan, metrics). Relevant if any field is.

    Without RELEVANCE_LLM_CHECK only the heuristic is used. With it, each
    non-empty field is classified by the LLM concurrently; fields the LLM
    could not classify fall back to the heuristic.
    """
    present = {name: text for name, text in fields.items() if text and text.strip()}
    if not present:
        return False

    heuristic = {name: not is_off_topic(text) for name, text in present.items()}
    if not settings.RELEVANCE_LLM_CHECK:
        return any(heuristic.values())

    names = list(present)
    verdicts = await asyncio.gather(
        *(_classify(llm, name, present[name], user_id) for name in names)
    )
    resolved = [
        heuristic[name] if verdict is None else verdict
        for name, verdict in zip(names, verdicts)
    ]
    logger.info("Relevance checked", fields=names, verdicts=resolved)
    return any(resolved)
