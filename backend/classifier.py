"""
Classifier adapter: asks Claude for a cognitive label and duration per title.

The scheduling engine only consumes the resulting (tier, duration); any failure
here degrades to a fixed fallback so callers always get one answer per title.
"""
import json
import logging
import re
from typing import Any, Optional

import anthropic

from models import CATEGORY_TO_TIER, Category8, Classification, Duration
from prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5"
FALLBACK_LABEL = Category8.SOCIAL
FALLBACK_DURATION = Duration.HALF

_TIME_TOKENS = re.compile(
    r"\b(15m|15\s*min(?:ute)?s?|30m|30\s*min(?:ute)?s?|60m|1h|1\s*hour|2h|2\s*hours|90m|120m"
    r"|1\.5h|1\.5\s*hours|half[- ]?hour|quarter[- ]?hour|full[- ]?hour|quick)\b",
    re.IGNORECASE,
)

# Hints above an hour clamp to a single 60-minute block
_HINTS: list[tuple[re.Pattern, Duration]] = [
    (re.compile(r"\b(15m|15\s*min(?:ute)?s?|quarter[- ]?hour|quick)\b", re.I), Duration.QUARTER),
    (re.compile(r"\b(30m|30\s*min(?:ute)?s?|half[- ]?hour)\b", re.I), Duration.HALF),
    (re.compile(r"\b(60m|1h|1\s*hour|full[- ]?hour)\b", re.I), Duration.HOUR),
    (re.compile(r"(\b90m\b|\b1\.5h\b|\b1\.5\s*hours\b)", re.I), Duration.HOUR),
    (re.compile(r"\b(2h|2\s*hours|120m)\b", re.I), Duration.HOUR),
]

_QUICK_WORK = re.compile(r"(reply|email|inbox|schedule|invite|remind|reschedul|expense|invoice|form|receipt|\bdm\b|text|ping|reserve)")
_FOCUS_WORK = re.compile(r"(write|design|code|analy[sz]|research|study|build|implement|prototype|refactor|diagram)")


def extract_time_hint(raw: str) -> tuple[str, Optional[Duration]]:
    """
    Strip time tokens ("15m", "half hour", "quick", "2h") from a title and
    return (cleaned title, duration hint). Counts like "10 emails" are kept.
    """
    hint = None
    for pattern, duration in _HINTS:
        if pattern.search(raw):
            hint = duration
            break

    cleaned = re.sub(r"\s+", " ", _TIME_TOKENS.sub(" ", raw)).strip()
    return cleaned or raw.strip(), hint


def guess_duration(title: str) -> Duration:
    lowered = title.lower()
    if _QUICK_WORK.search(lowered):
        return Duration.QUARTER
    if _FOCUS_WORK.search(lowered):
        return Duration.HOUR
    return Duration.HALF


def fallback_classification(title: str) -> Classification:
    cleaned, _hint = extract_time_hint(title)
    return Classification(
        title=cleaned,
        label=FALLBACK_LABEL,
        category=CATEGORY_TO_TIER[FALLBACK_LABEL],
        duration=FALLBACK_DURATION,
    )


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text


class TaskClassifier:
    """Batch classifier over the Anthropic messages API."""

    def __init__(self, client: Any = None, model: str = DEFAULT_MODEL, api_key: Optional[str] = None):
        self.model = model
        if client is None and api_key:
            client = anthropic.AsyncAnthropic(api_key=api_key)
        self.client = client

    async def classify(self, titles: list[str]) -> list[Classification]:
        if not titles:
            return []
        if self.client is None:
            logger.warning("Classifier not configured; using fallback for %d task(s)", len(titles))
            return [fallback_classification(t) for t in titles]

        prepared = [extract_time_hint(t) for t in titles]
        numbered = "\n".join(f"{i}. {cleaned}" for i, (cleaned, _hint) in enumerate(prepared, start=1))

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=1024,
                system=SYSTEM_PROMPT.format(tasks=numbered),
                messages=[{"role": "user", "content": "Classify the tasks listed above."}],
            )
        except anthropic.APIError:
            logger.exception("Classification request failed")
            return [fallback_classification(t) for t in titles]

        ai_text = strip_code_fence(response.content[0].text)
        try:
            parsed = json.loads(ai_text)
        except json.JSONDecodeError:
            logger.error("Failed to parse classifier response: %r", ai_text[:200])
            return [fallback_classification(t) for t in titles]
        if not isinstance(parsed, list):
            logger.error("Classifier response is not a list: %r", ai_text[:200])
            return [fallback_classification(t) for t in titles]

        results = []
        for i, (cleaned, hint) in enumerate(prepared):
            entry = parsed[i] if i < len(parsed) and isinstance(parsed[i], dict) else {}
            results.append(self._to_classification(entry, cleaned, hint))
        return results

    @staticmethod
    def _to_classification(entry: dict, cleaned: str, hint: Optional[Duration]) -> Classification:
        title = entry.get("title")
        if not isinstance(title, str) or not title.strip():
            title = cleaned
        title = title.strip()

        try:
            label = Category8(entry.get("category"))
        except ValueError:
            label = FALLBACK_LABEL

        try:
            duration = Duration(int(entry.get("duration")))
        except (TypeError, ValueError):
            duration = hint or guess_duration(title)

        logger.debug("Classified %r as %s, %d min", title, label.value, int(duration))
        return Classification(title=title, label=label, category=CATEGORY_TO_TIER[label], duration=duration)
