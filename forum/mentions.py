"""
User mentions in post bodies.

A mention is the ``[user]name[/user]`` tag; the ``notified`` attribute some
editors add (``[user notified=true]name[/user]``) is accepted and ignored,
since who was already mailed is tracked per post in ``post_mentions``.
"""
import re

MENTION_PATTERN = re.compile(r"\[user(?:\s+notified=\w+)?\](.*?)\[/user\]", re.IGNORECASE | re.DOTALL)


def parse_mentioned_usernames(text: str | None) -> list[str]:
    """Usernames mentioned in *text*, in first-seen order, without repeats."""
    names: list[str] = []
    for match in MENTION_PATTERN.finditer(text or ""):
        name = match.group(1).strip()
        if name and name not in names:
            names.append(name)
    return names
