"""HTML rendering for Chatter feed content."""
import re
from html import escape
from typing import Optional

MENTION_RE = re.compile(r"@\[([^\]]+)\]")
URL_RE = re.compile(r"(https?://[^\s<]+)")

LINK_CLASS = "text-blue-600 hover:underline"
MENTION_CLASS = "text-blue-600"


def _link(url: str) -> str:
    return (
        f'<a href="{escape(url, quote=True)}" target="_blank" rel="noopener noreferrer" '
        f'class="{LINK_CLASS}">{escape(url)}</a>'
    )


def format_chatter_content(content: Optional[str]) -> str:
    """Plain feed text -> HTML with styled @[mentions], clickable URLs and <br> line breaks."""
    if not content:
        return ""

    formatted = escape(content, quote=False)
    formatted = MENTION_RE.sub(lambda m: f'<span class="{MENTION_CLASS}">@{m.group(1)}</span>', formatted)
    formatted = URL_RE.sub(lambda m: _link(m.group(1)), formatted)
    return formatted.replace("\n", "<br>")

