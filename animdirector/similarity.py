"""Textual reuse matching between frame prompts (token-set Jaccard)."""
from __future__ import annotations

from typing import Iterable

from schemas import ManifestFrame


def tokenize(prompt: str) -> set[str]:
    return set(prompt.lower().split())


def jaccard(a: str, b: str) -> float:
    """|A ∩ B| / |A ∪ B| over lower-cased whitespace tokens. Two empty prompts score 0."""
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def find_reusable(
    prompt: str,
    candidates: Iterable[ManifestFrame],
    threshold: float,
) -> ManifestFrame | None:
    """Return the most similar candidate scoring strictly above *threshold*.

    Ties go to the earliest candidate.
    """
    best: ManifestFrame | None = None
    best_score = threshold
    for frame in candidates:
        score = jaccard(prompt, frame.prompt)
        if score > best_score:
            best, best_score = frame, score
    return best
