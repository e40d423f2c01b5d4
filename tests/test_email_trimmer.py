from mail_receiver.services.email_trimmer import trim_quoted_history


def _trim(body: str) -> str:
    return trim_quoted_history(body, site_title="Forum", previous_discussion="Previous Replies")


def test_trim_keeps_plain_body() -> None:
    body = "Hello team,\nAll good here.\n\nCheers  \n\n"
    assert _trim(body) == "Hello team,\nAll good here.\n\nCheers"


def test_trim_stops_at_dash_separator() -> None:
    body = "Sounds good.\n---\nanything below\nis dropped"
    assert _trim(body) == "Sounds good."


def test_trim_ignores_overlong_dash_line() -> None:
    body = "Sounds good.\n" + "-" * 81 + "\nstill here"
    assert _trim(body) == body


def test_trim_stops_at_previous_discussion_marker() -> None:
    body = "New reply\n\n  Previous Replies  \nold reply"
    assert _trim(body) == "New reply"


def test_trim_stops_at_via_site_line() -> None:
    body = "My answer\n\nBob via Forum <notifications@forum.example>:\nquoted"
    assert _trim(body) == "My answer"


def test_trim_stops_at_timestamped_header() -> None:
    body = "Thanks\n\nOn 2020-01-01 at 10:15, Someone <x@example.com>:\nquoted"
    assert _trim(body) == "Thanks"


def test_trim_stops_at_on_date_wrote() -> None:
    body = "Thanks!\n\nOn Jan 1, 2020, Bob wrote:\n> original"
    assert _trim(body) == "Thanks!"


def test_trim_stops_at_three_header_lines() -> None:
    body = "Reply text\n\nFrom: a\nSent: b\nTo: c\nSubject: d\nold body"
    assert _trim(body) == "Reply text"


def test_trim_needs_three_consecutive_header_lines() -> None:
    body = "Reply text\nFrom: a\nSent: b\nend"
    assert _trim(body) == body


def test_trim_stops_at_headers_on_one_line() -> None:
    body = "Reply text\nFrom: a Sent: b To: c\nold body"
    assert _trim(body) == "Reply text"


def test_trim_returns_empty_when_first_line_matches() -> None:
    assert _trim("---\nonly quoted") == ""
