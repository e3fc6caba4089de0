"""Keyword heuristics for factual questions (prices, menus, formulas)."""

import re

from neowhat.models import RetrievedPassage

FACTUAL_KEYWORDS = (
    "prix", "coûte", "tarif", "€", "euro", "formule",
    "express", "complet", "burger", "curry", "combien",
)

# The no-match fallback never triggered on "combien" alone
FALLBACK_KEYWORDS = tuple(k for k in FACTUAL_KEYWORDS if k != "combien")

FORMULA_TRIGGERS = ("formule", "express", "complète", "complet")

ENRICHMENT_STOPWORDS = frozenset({
    "combien", "quel", "quelle", "quels", "quelles", "comment",
    "pourquoi", "quand", "où", "est", "sont", "cest", "pour",
})

FALLBACK_STOPWORDS = frozenset({
    "combien", "quel", "quelle", "quels", "quelles", "comment",
    "pourquoi", "quand", "où",
})

_PUNCTUATION = re.compile(r"[?!.,;:]")


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def is_factual_question(question: str) -> bool:
    return contains_any(question, FACTUAL_KEYWORDS)


def is_formula_question(question: str) -> bool:
    lowered = _PUNCTUATION.sub("", question.lower())
    return any(trigger in lowered for trigger in FORMULA_TRIGGERS)


def enrichment_keywords(question: str) -> list[str]:
    """Words of 3+ characters with punctuation stripped, minus question words."""
    words = _PUNCTUATION.sub(" ", question.lower()).split()
    return [w for w in words if len(w) >= 3 and w not in ENRICHMENT_STOPWORDS]


def fallback_keywords(question: str) -> list[str]:
    """Words of 4+ characters split on whitespace only, minus question words."""
    words = question.lower().split()
    return [w for w in words if len(w) >= 4 and w not in FALLBACK_STOPWORDS]


def dedupe_by_prefix(passages: list[RetrievedPassage], prefix_length: int) -> list[RetrievedPassage]:
    """Keep the first passage for each distinct leading prefix of its content."""
    seen: set[str] = set()
    unique = []
    for passage in passages:
        key = passage.content[:prefix_length]
        if key in seen:
            continue
        seen.add(key)
        unique.append(passage)
    return unique
