"""Content sanitising and tag/kind normalisation shared by posts and comments."""

import re
from typing import Iterable, Optional

from thinkedin.core.exceptions import ValidationError
from thinkedin.core.types import POST_KINDS

DEFAULT_TAG = "#general"

TAG_OPTIONS = [
    '#philosophy', '#deepthoughts', '#randomthoughts', '#existential', '#showerthoughts',
    '#mentalhealth', '#overthinking', '#humancondition', '#introspection', '#ideas',
    '#curious', '#lifequestions', '#minddump', '#emotion', '#truth', '#technology',
    '#relationships', '#school', '#future', '#love', '#career', '#faith', '#politics',
    '#science', '#culture', '#identity', '#purpose', '#memory', '#dreams', '#addiction',
    '#networking', '#jobsearch', '#productivity', '#leadership', '#worklife', '#coding',
    '#ai', '#startups', '#linkedin', '#resume', '#interview', '#rant', '#confession',
    '#advice', '#storytime', '#question', '#pain', '#joy', '#inspiration', '#confused',
    '#lonely', '#hope', '#darkthoughts', '#lighthearted', '#anonymous',
]

# C0/C1 control characters except tab and newline
_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0b-\x1f\x7f-\x9f]')


def sanitize_content(text: Optional[str], max_length: int) -> str:
    """Strip control characters and surrounding whitespace, then enforce bounds.

    Raises:
        ValidationError: empty after trimming, or longer than max_length
    """
    if text is None:
        raise ValidationError("Content cannot be empty")
    cleaned = _CONTROL_CHARS.sub('', text).strip()
    if not cleaned:
        raise ValidationError("Content cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationError(
            f"Content is {len(cleaned)} characters, maximum is {max_length}"
        )
    return cleaned


def normalize_tags(tags: Optional[Iterable[str]], default_tag: str = DEFAULT_TAG) -> list[str]:
    """Lowercase, '#'-prefix and de-duplicate tags, keeping first-seen order.

    Falls back to [default_tag] when nothing usable remains.
    """
    result = []
    for tag in tags or []:
        if not isinstance(tag, str):
            continue
        tag = tag.strip().lower()
        if not tag or tag == "#":
            continue
        if not tag.startswith("#"):
            tag = f"#{tag}"
        if tag not in result:
            result.append(tag)
    return result or [default_tag]


def normalize_kind(kind: Optional[str]) -> str:
    if kind is None or kind == "":
        return POST_KINDS[0]
    kind = kind.strip().lower()
    if kind not in POST_KINDS:
        raise ValidationError(f"Unknown post kind '{kind}'")
    return kind
