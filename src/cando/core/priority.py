"""Task priority from impact and urgency - pure functions, no I/O."""

import re
from dataclasses import dataclass

_COMBINED = re.compile(r"#i(\d{1,2})u(\d{1,2})\b", re.IGNORECASE)
_IMPACT = re.compile(r"#i(\d{1,2})\b", re.IGNORECASE)
_URGENCY = re.compile(r"#u(\d{1,2})\b", re.IGNORECASE)
_PRIORITY = re.compile(r"#p(\d{1,2})\b", re.IGNORECASE)


def calculate_priority(impact: int | None = None, urgency: int | None = None) -> int | None:
    """
    Combine impact and urgency into one display priority.

    Both present -> their average rounded half up; one present -> that
    value; neither (or both zero) -> None.
    """
    imp = impact or 0
    urg = urgency or 0
    if imp <= 0 and urg <= 0:
        return None
    if imp > 0 and urg > 0:
        return (imp + urg + 1) // 2
    return imp if imp > 0 else urg


def priority_label(priority: int | None) -> str | None:
    """Badge text, e.g. "P6"."""
    if not priority or priority <= 0:
        return None
    return f"P{priority}"


def urgency_level(urgency: int | None) -> str:
    """Bucket an urgency value: none, low, medium, high or critical."""
    if not urgency or urgency <= 0:
        return "none"
    if urgency <= 3:
        return "low"
    if urgency <= 6:
        return "medium"
    if urgency <= 8:
        return "high"
    return "critical"


@dataclass
class ParsedPriority:
    content: str
    impact: int | None = None
    urgency: int | None = None


def _valid(value: str) -> int | None:
    n = int(value)
    return n if 1 <= n <= 10 else None


def parse_priority_from_content(content: str) -> ParsedPriority:
    """
    Pull priority hashtags out of task text.

    Supported: #i7u3 (impact 7, urgency 3), #i7, #u3, and #p5 (both set to 5).
    Values outside 1-10 are left in the text untouched.
    """
    cleaned = content
    impact = urgency = None

    for match in _COMBINED.finditer(content):
        imp, urg = _valid(match.group(1)), _valid(match.group(2))
        if imp is None or urg is None:
            continue
        if impact is None:
            impact, urgency = imp, urg
        cleaned = cleaned.replace(match.group(0), " ", 1)

    if impact is None:
        for match in _IMPACT.finditer(cleaned):
            imp = _valid(match.group(1))
            if imp is None:
                continue
            impact = impact or imp
            cleaned = cleaned.replace(match.group(0), " ", 1)

    if urgency is None:
        for match in _URGENCY.finditer(cleaned):
            urg = _valid(match.group(1))
            if urg is None:
                continue
            urgency = urgency or urg
            cleaned = cleaned.replace(match.group(0), " ", 1)

    if impact is None and urgency is None:
        for match in _PRIORITY.finditer(cleaned):
            value = _valid(match.group(1))
            if value is None:
                continue
            if impact is None:
                impact = urgency = value
            cleaned = cleaned.replace(match.group(0), " ", 1)

    return ParsedPriority(content=" ".join(cleaned.split()), impact=impact, urgency=urgency)
