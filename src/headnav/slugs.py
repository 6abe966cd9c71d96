"""Anchor slug allocation.

Turns heading text into URL-safe anchors that stay unique within one
extraction pass: ``introduction``, ``introduction-2``, ``introduction-3``.
Counting is strictly sequential in document order.
"""

from __future__ import annotations

import re
import unicodedata

_STRIP_RE = re.compile(r"[^\w\s-]")
_HYPHENATE_RE = re.compile(r"[\s-]+")


def slugify(text: str) -> str:
    """Return the base slug for ``text`` (may be empty).

    Lowercases, folds accents (``Über`` → ``uber``), drops punctuation and
    collapses whitespace/hyphen runs to a single hyphen. Underscores and
    non-Latin letters survive, so ``:white_check_mark:`` keeps its
    underscores.
    """
    value = unicodedata.normalize("NFKD", text.lower())
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = _STRIP_RE.sub("", value)
    return _HYPHENATE_RE.sub("-", value).strip("-")


def allocate_anchor(text: str, fallback: str, counts: dict[str, int]) -> str:
    """Allocate a unique anchor for ``text``.

    ``counts`` maps every slug handed out so far to its number of prior
    occurrences and must be shared across one extraction pass. An empty slug
    uses ``fallback`` instead.
    """
    base = slugify(text) or fallback
    previous = counts.get(base)
    if previous is None:
        counts[base] = 1
        return base

    occurrence = previous + 1
    anchor = f"{base}-{occurrence}"
    # A literal heading such as "Intro 2" may already own "intro-2"
    while anchor in counts:
        occurrence += 1
        anchor = f"{base}-{occurrence}"
    counts[base] = occurrence
    counts[anchor] = 1
    return anchor
