import re

_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE = re.compile(r"\s+")


def sanitize_title(title: str, max_length: int = 200) -> str:
    """Reduce a video title to ASCII word characters and single spaces.

    Safe to embed in a quoted Content-Disposition filename: quotes,
    backslashes, control characters and line breaks cannot survive.
    May return an empty string.
    """
    name = _NON_WORD.sub("", title)
    name = _WHITESPACE.sub(" ", name)
    return name.strip()[:max_length].strip()
