"""Challenge text to CLIP candidate labels.

Challenge titles are written in Russian; the similarity model scores English
labels, so known domain phrases map to sets of English labels. Text with no
known phrase falls back to its own longer words.
"""

from __future__ import annotations

import string

MAX_KEYWORDS = 8
FALLBACK_WORDS = 5
MIN_FALLBACK_WORD_LENGTH = 4

# Scanned in order; matched label sets are concatenated in this order.
CHALLENGE_KEYWORDS: dict[str, list[str]] = {
    # Light
    "луч света": ["light ray", "sunbeam", "light beam", "sunlight through", "ray of light", "sun rays", "light streaming"],
    "закат": ["sunset", "golden hour", "evening sky", "orange sky", "sun setting"],
    "рассвет": ["sunrise", "dawn", "morning light", "early morning sky"],
    "тень": ["shadow", "silhouette", "dark shadow", "shadows"],
    "силуэт": ["silhouette", "dark figure", "outline against light"],
    # Nature
    "цветок": ["flower", "blossom", "petal", "bloom", "floral"],
    "дерево": ["tree", "trunk", "branches", "leaves", "forest"],
    "вода": ["water", "lake", "river", "ocean", "pond", "reflection in water"],
    "облака": ["clouds", "sky", "cloudy sky", "cloud formation"],
    "капля": ["water drop", "droplet", "dew", "rain drop"],
    # Urban
    "архитектура": ["architecture", "building", "facade", "structure"],
    "граффити": ["graffiti", "street art", "mural", "wall art"],
    "улица": ["street", "road", "urban", "city street"],
    "ночной город": ["night city", "city lights", "urban night", "neon lights"],
    # Abstract
    "отражение": ["reflection", "mirror", "reflected", "glass reflection"],
    "текстура": ["texture", "pattern", "surface", "material"],
    "симметрия": ["symmetry", "symmetric", "balanced", "mirror image"],
    "минимализм": ["minimalist", "simple", "minimal", "clean composition"],
    "контраст": ["contrast", "light and dark", "black and white"],
    # Objects
    "кофе": ["coffee", "cup of coffee", "coffee mug", "latte"],
    "книга": ["book", "reading", "pages", "literature"],
    "еда": ["food", "meal", "dish", "cuisine"],
}

_STRIP_CHARS = string.punctuation + "«»„“”…—–"


def challenge_prompt(title: str, description: str | None = None) -> str:
    """Text scanned for keywords: title plus optional description."""
    return f"{title} {description or ''}".strip()


def _dedupe(labels: list[str]) -> list[str]:
    seen: set[str] = set()
    unique: list[str] = []
    for label in labels:
        if label not in seen:
            seen.add(label)
            unique.append(label)
    return unique


def _fallback_words(text: str) -> list[str]:
    tokens = [token.strip(_STRIP_CHARS) for token in text.split()]
    tokens = [token for token in tokens if token]
    long_tokens = [token for token in tokens if len(token) >= MIN_FALLBACK_WORD_LENGTH]
    return (long_tokens or tokens)[:FALLBACK_WORDS]


def extract_keywords(text: str) -> list[str]:
    """Derive an ordered, duplicate-free list of at most 8 candidate labels."""
    lowered = text.lower()
    if not lowered.strip():
        return []

    labels: list[str] = []
    for phrase, phrase_labels in CHALLENGE_KEYWORDS.items():
        if phrase in lowered:
            labels.extend(phrase_labels)

    if not labels:
        labels = _fallback_words(lowered)

    return _dedupe(labels)[:MAX_KEYWORDS]
