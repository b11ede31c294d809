"""
Intent matching for spoken or typed answers.

Resolves a raw transcript to one of the session's intent targets:
1. Exact match on the normalized Thai script
2. Exact match on the normalized romanization
3. Fuzzy (edit distance) match on the script, then on the romanization

Deterministic and side-effect free.
"""

import logging
import re
from collections.abc import Callable, Iterable, Sequence

from kamjai.application.utils.text import (
    levenshtein_distance,
    normalize_romanized,
    normalize_script,
)
from kamjai.domain.constants import (
    INTENT_PREFIX,
    MATCH_CONFIDENCE_THRESHOLD,
    MAX_EDIT_DISTANCE,
)
from kamjai.domain.minigame.models import (
    IntentMatchResult,
    IntentTarget,
    MatchMethod,
    VocabularyItem,
)

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"[^a-z0-9]+")


def build_intent_targets_from_vocab(vocab: Iterable[VocabularyItem]) -> list[IntentTarget]:
    """
    Derive one intent target per vocabulary item, preserving order.

    The tag is INTENT_<TRANSLATION>_<n>; the 1-based position keeps tags unique
    even when two items share a translation.
    """
    targets: list[IntentTarget] = []
    for index, item in enumerate(vocab, start=1):
        base = _TAG_RE.sub("_", item.english_translation.lower()).strip("_") or "intent"
        targets.append(
            IntentTarget(
                intent=f"{INTENT_PREFIX}_{base.upper()}_{index}",
                thai_script=item.thai_script,
                romanization=item.romanization,
                english_translation=item.english_translation,
                vocabulary_id=item.id,
            )
        )
    return targets


def fuzzy_confidence(distance: int, candidate: str) -> float:
    """1 - distance / len(candidate), clamped to [0, 1] with a length floor of 1."""
    ratio = 1 - distance / max(len(candidate), 1)
    return max(0.0, min(1.0, ratio))


def _exact(
    normalized: str,
    targets: Sequence[IntentTarget],
    key: Callable[[IntentTarget], str],
    method: MatchMethod,
) -> IntentMatchResult | None:
    if not normalized:
        return None
    for target in targets:
        if key(target) == normalized:
            return IntentMatchResult(
                matched=True,
                intent=target.intent,
                vocabulary_id=target.vocabulary_id,
                confidence=1.0,
                method=method,
                normalized_transcript=normalized,
            )
    return None


def _fuzzy(
    normalized: str,
    targets: Sequence[IntentTarget],
    key: Callable[[IntentTarget], str],
    method: MatchMethod,
    max_edit_distance: int,
    confidence_threshold: float,
) -> IntentMatchResult | None:
    if not normalized:
        return None

    best: tuple[IntentTarget, float] | None = None
    for target in targets:
        candidate = key(target)
        if not candidate:
            continue
        distance = levenshtein_distance(normalized, candidate)
        if distance > max_edit_distance:
            continue
        confidence = fuzzy_confidence(distance, candidate)
        # Strictly greater: ties keep the earlier target
        if best is None or confidence > best[1]:
            best = (target, confidence)

    if best is None or best[1] < confidence_threshold:
        return None

    target, confidence = best
    return IntentMatchResult(
        matched=True,
        intent=target.intent,
        vocabulary_id=target.vocabulary_id,
        confidence=confidence,
        method=method,
        normalized_transcript=normalized,
    )


def match_spoken_intent(
    transcript: str,
    targets: Sequence[IntentTarget],
    *,
    max_edit_distance: int = MAX_EDIT_DISTANCE,
    confidence_threshold: float = MATCH_CONFIDENCE_THRESHOLD,
) -> IntentMatchResult:
    """
    Resolve a transcript against the session's intent targets.

    Args:
        transcript: Raw recognizer output or typed text.
        targets: Intent targets in session order; earlier targets win ties.
        max_edit_distance: Fuzzy candidates farther than this are discarded.
        confidence_threshold: Minimum fuzzy confidence to accept.

    Returns:
        An IntentMatchResult. Unmatched results still carry the normalized
        transcript for diagnostics.
    """
    norm_thai = normalize_script(transcript)
    norm_roman = normalize_romanized(transcript)

    if not norm_thai and not norm_roman:
        return IntentMatchResult.unmatched()

    def thai_key(t: IntentTarget) -> str:
        return normalize_script(t.thai_script)

    def roman_key(t: IntentTarget) -> str:
        return normalize_romanized(t.romanization)

    result = (
        _exact(norm_thai, targets, thai_key, MatchMethod.EXACT_THAI)
        or _exact(norm_roman, targets, roman_key, MatchMethod.EXACT_ROMANIZATION)
        or _fuzzy(
            norm_thai,
            targets,
            thai_key,
            MatchMethod.FUZZY_THAI,
            max_edit_distance,
            confidence_threshold,
        )
        or _fuzzy(
            norm_roman,
            targets,
            roman_key,
            MatchMethod.FUZZY_ROMANIZATION,
            max_edit_distance,
            confidence_threshold,
        )
    )
    if result is not None:
        logger.debug(f"Matched '{transcript}' -> {result.intent} via {result.method.value}")
        return result

    logger.debug(f"No intent matched for '{transcript}'")
    return IntentMatchResult.unmatched(norm_thai or norm_roman)


def normalize_transcript_for_debug(transcript: str) -> dict[str, str]:
    return {
        "thai": normalize_script(transcript),
        "romanization": normalize_romanized(transcript),
    }
