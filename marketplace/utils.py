import re

_CONTROL_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")

PREVIEW_LENGTH = 100


def sanitize_text(value, max_len=1000):
    s = (value or "")
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    s = _CONTROL_RE.sub("", s)
    s = s.strip()
    if len(s) > max_len:
        s = s[:max_len]
    return s


def preview(text, length=PREVIEW_LENGTH):
    """Single-line excerpt used as a conversation's last-message preview."""
    flat = " ".join((text or "").split())
    if len(flat) <= length:
        return flat
    return flat[: length - 3].rstrip() + "..."
