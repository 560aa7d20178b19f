from __future__ import annotations

import re


_HEADING = re.compile(r"#+\s*")
_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_CODE = re.compile(r"`{1,3}(.*?)`{1,3}")
_LINK = re.compile(r"\[(.*?)\]\(.*?\)")
_EXTRA_NEWLINES = re.compile(r"\n{3,}")


def format_response(text: str) -> str:
    """Strip markdown-style markup from generated text.

    Headings, bold/italic markers and code fences are removed (inner text is
    kept), links collapse to their visible text, and runs of three or more
    newlines become a single blank line.
    """
    text = _HEADING.sub("", text)
    text = _BOLD.sub(r"\1", text)
    text = _ITALIC.sub(r"\1", text)
    text = _CODE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _EXTRA_NEWLINES.sub("\n\n", text)
    return text.strip()
