"""Trim quoted history and reply boilerplate off the end of an email body.

The rules are heuristics tuned against real mail clients. They will
occasionally cut a legitimate line that looks like a reply header; leaving
a whole quoted thread in the post is considered worse.
"""
import re

REPLYING_HEADER_LABELS = ("From", "Sent", "To", "Subject", "Reply To", "Cc", "Bcc", "Date")
REPLYING_HEADER_REGEX = re.compile("|".join(re.escape(f"{label}:") for label in REPLYING_HEADER_LABELS))

_SEPARATOR = re.compile(r"\A\s*-{3,80}\s*\Z")
_YEAR = re.compile(r"\d{4}")
_TIME = re.compile(r"\d:\d\d")
_ENDS_WITH_COLON = re.compile(r":$")
_ON_DATE_WROTE = re.compile(r"On \w+ \d+,? \d+,?.*wrote:")


def _line_rules(site_title: str, previous_discussion: str) -> list[re.Pattern[str]]:
    rules = [_SEPARATOR, _ON_DATE_WROTE]
    if previous_discussion:
        rules.append(re.compile(r"\A\s*" + re.escape(previous_discussion) + r"\s*\Z"))
    if site_title:
        rules.append(re.compile(r"via " + re.escape(site_title) + r"(.*):$"))
    return rules


def _looks_like_timestamped_header(line: str) -> bool:
    # Lots of clients write "On 2020-01-01 at 10:15, Someone <x@y>:".
    return bool(_YEAR.search(line) and _TIME.search(line) and _ENDS_WITH_COLON.search(line))


def _starts_header_block(lines: list[str], idx: int) -> bool:
    window = lines[idx : idx + 3]
    return len(window) == 3 and all(REPLYING_HEADER_REGEX.search(line) for line in window)


def _has_inline_headers(line: str) -> bool:
    return sum(1 for label in REPLYING_HEADER_LABELS if label in line) >= 3


def trim_quoted_history(body: str, *, site_title: str, previous_discussion: str) -> str:
    lines = (body or "").replace("\r\n", "\n").split("\n")
    rules = _line_rules(site_title, previous_discussion)

    def halts(idx: int) -> bool:
        line = lines[idx]
        return (
            any(rule.search(line) for rule in rules)
            or _looks_like_timestamped_header(line)
            or _starts_header_block(lines, idx)
            or _has_inline_headers(line)
        )

    stop = next((idx for idx in range(len(lines)) if halts(idx)), len(lines))
    return "\n".join(lines[:stop]).strip()
