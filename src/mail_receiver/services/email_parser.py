from __future__ import annotations

import re
from dataclasses import dataclass, field

_QUOTED_LINE = re.compile(r"^\s*>")
_QUOTE_HEADER = re.compile(r"^\s*On\s.+wrote:\s*$")
_WRAPPED_QUOTE_HEADER = re.compile(r"^(On\s[^\n]+)\n([^\n]*wrote:)[ \t]*$", re.MULTILINE)
_SIGNATURE_START = re.compile(r"^\s*(--|__)\s*$|^-\w|^Sent from my (\w+\s*){1,3}$")

QUOTE = "quote"
HEADER = "header"
SIGNATURE = "signature"
TEXT = "text"


@dataclass
class Fragment:
    kind: str
    lines: list[str] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "\n".join(self.lines)

    @property
    def hidden(self) -> bool:
        return self.kind != TEXT or not self.content.strip()


def _line_kind(line: str, current: str | None) -> str:
    if _QUOTED_LINE.match(line):
        return QUOTE
    if _QUOTE_HEADER.match(line):
        return HEADER
    if _SIGNATURE_START.match(line):
        return SIGNATURE
    if not line.strip() and current is not None:
        return current
    if current == SIGNATURE:
        return SIGNATURE
    return TEXT


def split_fragments(text: str) -> list[Fragment]:
    text = (text or "").replace("\r\n", "\n")
    # Some clients wrap "On <date>, <name> wrote:" onto two lines.
    text = _WRAPPED_QUOTE_HEADER.sub(r"\1 \2", text)

    fragments: list[Fragment] = []
    for line in text.split("\n"):
        current = fragments[-1].kind if fragments else None
        kind = _line_kind(line, current)
        starts_new = kind != current or (kind == SIGNATURE and _SIGNATURE_START.match(line))
        if starts_new:
            fragments.append(Fragment(kind))
        fragments[-1].lines.append(line.rstrip())
    return fragments


def extract_reply_text(raw_text: str) -> str:
    """Drop trailing quoted text, quote headers and signatures.

    Quoted blocks followed by new text are inline answers and stay visible.
    """
    fragments = split_fragments(raw_text)
    while fragments and fragments[-1].hidden:
        fragments.pop()

    text = "\n".join(fragment.content for fragment in fragments).strip()
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text
