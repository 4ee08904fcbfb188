import re

_TAG = re.compile(r"<[^>]*>")
_WS = re.compile(r"\s+")

# Order matters: &amp; is decoded last so "&amp;lt;" stays a literal "&lt;".
_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#039;", "'"),
    ("&#39;", "'"),
    ("&amp;", "&"),
)


def clean(raw) -> str:
    """Strip markup and common entities from ``raw`` and collapse whitespace.

    Never raises: bytes are decoded leniently, ``None`` becomes ``""`` and
    unbalanced markup degrades to best-effort text. The result contains no
    angle brackets, including ones produced by entity decoding.
    """
    if raw is None:
        return ""
    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
    else:
        text = str(raw)

    text = _TAG.sub(" ", text)
    # Dangling "<div" without a closing bracket.
    text = re.sub(r"<[^\s<>]*", " ", text)
    for entity, value in _ENTITIES:
        text = text.replace(entity, value)
    text = text.replace("<", " ").replace(">", " ")
    return normalize_whitespace(text)


def normalize_whitespace(s: str) -> str:
    return _WS.sub(" ", (s or "").strip())


def truncate(s: str, max_chars: int) -> str:
    s = s or ""
    if len(s) <= max_chars:
        return s
    return s[: max(0, max_chars - 3)] + "..."
