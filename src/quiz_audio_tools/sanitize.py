import re

# Latin letters with Latin-1 accents, the basic Arabic letters, digits and
# the punctuation a spoken question may contain.
_DISALLOWED = re.compile(r"[^a-zA-ZÀ-ÖØ-öø-ÿء-ي0-9 ?!.,+\-*/=()^%<>$€'\"’]")


def sanitize(text):
    """Drop every character the voice engine should not read out."""
    if not text:
        return ""
    return _DISALLOWED.sub("", text)


def is_blank(text):
    return text is None or not str(text).strip()
