"""Content hashing and text scrubbing for calendar events - no I/O dependencies.

The content hash is what the snapshot differ compares, so everything that
feeds it is normalised first: titles are whitespace-collapsed and lowercased,
participants are scrubbed of addresses, deduplicated and sorted, and bodies
are stripped of HTML, join-meeting boilerplate and contact details.
"""

import hashlib
import html
import re

URL_PATTERN = re.compile(r"\bhttps?://\S+|\bwww\.[^\s]+", re.IGNORECASE)
MAILTO_PATTERN = re.compile(r"\bmailto:[^\s]+", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"\+?\d[\d().\s-]{7,}\d")
LONG_NUMERIC_ID_PATTERN = re.compile(r"\b\d{6,}\b")
HTML_TAG_PATTERN = re.compile(r"</?[a-z][^>]*>", re.IGNORECASE)

JOIN_BLOCK_KEYWORDS = (
    "join microsoft teams meeting",
    "click here to join",
    "meeting id",
    "passcode",
    "dial-in",
    "conference id",
    "join teams meeting",
    "join zoom meeting",
    "one tap mobile",
    "call in",
)

DEFAULT_BODY_MAX_CHARS = 4000
DEFAULT_PREVIEW_CHARS = 280


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def _unfold_ics_escapes(value: str) -> str:
    value = re.sub(r"\\n", "\n", value, flags=re.IGNORECASE)
    return value.replace("\\,", ",").replace("\\;", ";").replace("\\\\", "\\")


def _strip_html(value: str) -> str:
    value = re.sub(r"<style[\s\S]*?</style>", " ", value, flags=re.IGNORECASE)
    value = re.sub(r"<script[\s\S]*?</script>", " ", value, flags=re.IGNORECASE)
    value = re.sub(r"<br\s*/?>", "\n", value, flags=re.IGNORECASE)
    value = re.sub(r"</(p|div|li|h\d)>", "\n", value, flags=re.IGNORECASE)
    value = re.sub(r"<li[^>]*>", "- ", value, flags=re.IGNORECASE)
    value = re.sub(r"<[^>]+>", " ", value)
    return html.unescape(value).replace("\xa0", " ")


def _normalize_whitespace(value: str) -> str:
    value = value.replace("\r\n", "\n")
    value = re.sub(r"[ \t]+\n", "\n", value)
    value = re.sub(r"\n[ \t]+", "\n", value)
    value = re.sub(r"[ \t]{2,}", " ", value)
    value = re.sub(r"\n{3,}", "\n\n", value)
    return value.strip()


def _redact_join_blocks(text: str) -> str:
    """Drop dial-in boilerplate: each keyword line plus one before and two after."""
    lines = re.split(r"\r?\n", text)
    skip: set[int] = set()
    for i, line in enumerate(lines):
        lowered = line.lower()
        if any(keyword in lowered for keyword in JOIN_BLOCK_KEYWORDS):
            skip.update(j for j in range(i - 1, i + 3) if 0 <= j < len(lines))
    return "\n".join(line for i, line in enumerate(lines) if i not in skip)


def sanitize_body(body: str, max_chars: int = DEFAULT_BODY_MAX_CHARS) -> str:
    """Scrub an event body to plain text without links or contact details."""
    if not body:
        return ""

    text = _unfold_ics_escapes(body)
    if HTML_TAG_PATTERN.search(text):
        text = _strip_html(text)
    text = _redact_join_blocks(text)

    for pattern in (
        URL_PATTERN,
        MAILTO_PATTERN,
        EMAIL_PATTERN,
        PHONE_PATTERN,
        LONG_NUMERIC_ID_PATTERN,
    ):
        text = pattern.sub(" ", text)

    text = _normalize_whitespace(text)
    return text[:max_chars].rstrip() if len(text) > max_chars else text


def build_body_preview(body_scrubbed: str | None, preview_chars: int = DEFAULT_PREVIEW_CHARS) -> str | None:
    if not body_scrubbed:
        return None
    if len(body_scrubbed) <= preview_chars:
        return body_scrubbed
    return f"{body_scrubbed[:preview_chars].rstrip()}..."


def sanitize_participant(value: str | None) -> str | None:
    """Display name with quotes, addresses and links removed."""
    if not value:
        return None

    cleaned = _unfold_ics_escapes(value).replace('"', "").strip()
    for pattern in (MAILTO_PATTERN, EMAIL_PATTERN, URL_PATTERN):
        cleaned = pattern.sub(" ", cleaned)
    cleaned = re.sub(r"<\s*>", " ", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned or None


def normalize_participants(values) -> list[str]:
    """Scrubbed display names, case-insensitively deduplicated, first spelling kept."""
    seen: dict[str, str] = {}
    for value in values or []:
        if not isinstance(value, str):
            continue
        cleaned = sanitize_participant(value)
        if cleaned and cleaned.lower() not in seen:
            seen[cleaned.lower()] = cleaned
    return list(seen.values())


def normalize_title(title: str) -> str:
    return re.sub(r"\s+", " ", title or "").strip()


def build_content_hash(title: str, attendees, body: str | None) -> str:
    """SHA-256 over the normalised title, participants and body."""
    people = "|".join(sorted(p.lower() for p in normalize_participants(attendees)))
    body_text = re.sub(r"\s+", " ", body or "").strip()
    return sha256_hex(f"{normalize_title(title).lower()}\n{people}\n{body_text}")


def build_external_event_id(
    uid: str | None,
    recurrence_id: str | None,
    title: str,
    start_at: str,
    end_at: str,
) -> str:
    """
    Stable identity for an event occurrence.

    Uses the provider UID (suffixed with the recurrence id for overridden
    occurrences); events without a UID are identified by a hash of title and
    times.
    """
    cleaned_uid = (uid or "").strip()
    if cleaned_uid:
        cleaned_recurrence = (recurrence_id or "").strip()
        if cleaned_recurrence:
            return f"{cleaned_uid}::{cleaned_recurrence}"
        return cleaned_uid

    return sha256_hex(f"{normalize_title(title)}::{start_at}::{end_at}")
