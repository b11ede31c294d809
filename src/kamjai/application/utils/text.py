import re
import unicodedata
from typing import Literal

from kamjai.domain.constants import ROMAN_POLITE_PARTICLES, THAI_POLITE_PARTICLES

NormalizeMode = Literal["script", "romanized"]

WHITESPACE_RE = re.compile(r"\s+")
ZERO_WIDTH_RE = re.compile(r"[\u200b-\u200d\ufeff]")
NON_ROMAN_RE = re.compile(r"[^a-z0-9\s-]")


# ---------- Shared helpers ----------


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def strip_combining_marks(text: str) -> str:
    """Drop nonspacing marks (Thai tone marks, above/below vowels, Latin accents)."""
    decomposed = unicodedata.normalize("NFD", text)
    kept = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return unicodedata.normalize("NFC", kept)


# Particles are compared after mark stripping, so "ค่ะ" and "คะ" collapse together.
_THAI_PARTICLES = tuple(dict.fromkeys(strip_combining_marks(p) for p in THAI_POLITE_PARTICLES))


def _strip_trailing(text: str, particles: tuple[str, ...], word_boundary: bool) -> str:
    """
    Repeatedly strip trailing particles until none applies.

    Romanized particles only match as whole words so "banana" keeps its tail;
    Thai has no word spacing, so script particles match as plain suffixes.
    """
    changed = True
    while changed and text:
        changed = False
        for particle in particles:
            if not text.endswith(particle):
                continue
            head = text[: -len(particle)]
            if word_boundary and head and not head.endswith(" "):
                continue
            text = collapse_whitespace(head)
            changed = True
            break
    return text


# ---------- Normalization ----------


def normalize_script(text: str) -> str:
    """Canonical Thai-script form used for exact and fuzzy comparison."""
    if not text:
        return ""
    out = ZERO_WIDTH_RE.sub("", text)
    out = strip_combining_marks(out)
    out = collapse_whitespace(out)
    return _strip_trailing(out, _THAI_PARTICLES, word_boundary=False)


def normalize_romanized(text: str) -> str:
    """Canonical romanized form: lowercase ASCII letters, digits, spaces and hyphens."""
    if not text:
        return ""
    out = strip_combining_marks(text.lower())
    out = NON_ROMAN_RE.sub(" ", out)
    out = collapse_whitespace(out)
    return _strip_trailing(out, ROMAN_POLITE_PARTICLES, word_boundary=True)


def normalize(text: str, mode: NormalizeMode = "script") -> str:
    """
    Normalize text for comparison.

    An empty result means "no signal" and must never count as a match.
    """
    if mode == "script":
        return normalize_script(text)
    if mode == "romanized":
        return normalize_romanized(text)
    raise ValueError(f"Unknown normalization mode: {mode}")


# ---------- Distance ----------


def levenshtein_distance(left: str, right: str) -> int:
    """Classic edit distance with unit insert/delete/substitute costs."""
    if not left:
        return len(right)
    if not right:
        return len(left)

    previous = list(range(len(right) + 1))
    for i, lch in enumerate(left, start=1):
        current = [i] + [0] * len(right)
        for j, rch in enumerate(right, start=1):
            cost = 0 if lch == rch else 1
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + cost,
            )
        previous = current

    return previous[-1]
