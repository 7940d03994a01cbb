"""
Title similarity helpers used by the grouping engine.

Two titles are compared first by domain pattern (both look like email work,
both look like meetings, ...) and only then by edit distance.
"""
import re

SIMILARITY_THRESHOLD = 0.6

# Ordered: when several patterns are shared the first one names the group
TITLE_PATTERNS: dict[str, re.Pattern] = {
    "Email": re.compile(r"\b(repl(y|ies|ied)|respond|email|e mail|inbox|message)"),
    "Social media": re.compile(r"\b(linkedin|facebook|x|twitter|instagram|social|post|comment)\b"),
    "Admin": re.compile(r"\b(invoice|expense|form|paperwork|file|organi[sz]e|schedule|calendar|booking)"),
    "Writing": re.compile(r"\b(write|draft|compose|blog|article|content)"),
    "Meeting": re.compile(r"\b(meeting|call|discuss|sync|standup|interview)"),
    "File management": re.compile(r"\b(organi[sz]e|sort|clean|backup|upload|download|file|folder)"),
}


def normalize_title(title: str) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    lowered = re.sub(r"[^a-z0-9 ]+", " ", title.lower())
    return re.sub(r"\s+", " ", lowered).strip()


def matching_patterns(title: str) -> list[str]:
    """Names of the domain patterns a title matches, in pattern order."""
    normalized = normalize_title(title)
    return [name for name, pattern in TITLE_PATTERNS.items() if pattern.search(normalized)]


def levenshtein(a: str, b: str) -> int:
    """
    Edit distance between two strings.
    O(len(a) * len(b)) time, O(min(len(a), len(b))) memory.
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity_ratio(a: str, b: str) -> float:
    """1 - distance / longer length, on normalized titles. Identical titles score 1.0."""
    na = normalize_title(a)
    nb = normalize_title(b)
    if na == nb:
        return 1.0
    longer = max(len(na), len(nb))
    return (longer - levenshtein(na, nb)) / longer


def titles_similar(a: str, b: str, threshold: float = SIMILARITY_THRESHOLD) -> bool:
    """
    Shared domain pattern wins; otherwise fall back to edit distance.
    Callers only compare titles within the same (category, duration) cell.
    """
    if set(matching_patterns(a)) & set(matching_patterns(b)):
        return True
    return similarity_ratio(a, b) >= threshold
