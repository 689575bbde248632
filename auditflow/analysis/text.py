"""
Text Metrics

Deterministic measurements of plain text used by the rewriter and the
competitor analysis: word counts, Flesch reading ease, keyword positions,
top terms and coarse structure.
"""

import re
from collections import Counter
from typing import Dict, Any, List, Iterable

_WORD_RE = re.compile(r"[A-Za-z0-9']+")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")

STOP_WORDS = frozenset("""
a about above after again against all am an and any are as at be because been
before being below between both but by can could did do does doing down during
each few for from further had has have having he her here hers herself him
himself his how i if in into is it its itself just me more most my myself no nor
not now of off on once only or other our ours ourselves out over own same she
should so some such than that the their theirs them themselves then there these
they this those through to too under until up very was we were what when where
which while who whom why will with would you your yours yourself yourselves
""".split())

# Neutral value when a text has no words or sentences to measure
DEFAULT_READABILITY = 50.0


def words(text: str) -> List[str]:
    return _WORD_RE.findall(text)


def word_count(text: str) -> int:
    return len(words(text))


def count_syllables(text: str) -> int:
    """Approximate English syllable count (vowel groups with silent-e rules)."""
    total = 0
    for word in re.sub(r"[^a-z]", " ", text.lower()).split():
        count = len(_VOWEL_GROUP_RE.findall(word)) or 1
        if word.endswith("e"):
            count -= 1
        if word.endswith("le") and len(word) > 2:
            count += 1
        total += max(1, count)
    return total


def flesch_reading_ease(text: str) -> float:
    """
    Flesch reading ease, clamped to [0, 100].

    206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words)
    """
    word_total = len(text.split())
    sentences = [s for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]
    if word_total == 0 or not sentences:
        return DEFAULT_READABILITY

    words_per_sentence = word_total / len(sentences)
    syllables_per_word = count_syllables(text) / word_total
    score = 206.835 - (1.015 * words_per_sentence) - (84.6 * syllables_per_word)
    return round(min(100.0, max(0.0, score)), 1)


def reading_level(readability: float) -> str:
    """Coarse reading level from a Flesch score."""
    if readability >= 70:
        return "Elementary"
    if readability >= 50:
        return "Intermediate"
    return "Advanced"


def _keyword_pattern(keyword: str) -> "re.Pattern":
    return re.compile(r"\b" + re.escape(keyword.strip()) + r"\b", re.IGNORECASE)


def keyword_positions(text: str, keyword: str) -> List[int]:
    """Character offsets of whole-phrase, case-insensitive keyword matches."""
    if not keyword.strip():
        return []
    return [match.start() for match in _keyword_pattern(keyword).finditer(text)]


def contains_keyword(text: str, keyword: str) -> bool:
    """Case-insensitive containment check used for keyword coverage."""
    return keyword.strip().lower() in text.lower()


def missing_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    return [keyword for keyword in keywords if not contains_keyword(text, keyword)]


def keyword_usage(original: str, rewritten: str, keywords: Iterable[str]) -> List[Dict[str, Any]]:
    """Per-keyword counts before and after a rewrite, with match offsets."""
    usage = []
    for keyword in keywords:
        positions = keyword_positions(rewritten, keyword)
        usage.append({
            "keyword": keyword,
            "original_count": len(keyword_positions(original, keyword)),
            "new_count": len(positions),
            "positions": positions,
        })
    return usage


def top_terms(text: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Most frequent non-stop-word terms."""
    counter = Counter(
        word.lower() for word in words(text)
        if len(word) > 2 and word.lower() not in STOP_WORDS and not word.isdigit()
    )
    return [{"term": term, "count": count} for term, count in counter.most_common(limit)]


def keyword_density(text: str, terms: Iterable[str]) -> float:
    """Percent of words covered by occurrences of `terms` (single words or phrases)."""
    total = word_count(text)
    if total == 0:
        return 0.0
    hits = sum(len(keyword_positions(text, term)) * len(term.split()) for term in terms)
    return round(min(100.0, hits / total * 100), 2)


def content_structure(text: str) -> Dict[str, int]:
    """
    Count headings, paragraphs and list items in extracted page text.

    Headings are recognized as Markdown-style `#` lines or short lines
    without terminal punctuation.
    """
    headings = paragraphs = list_items = 0
    for block in re.split(r"\n\s*\n", text):
        lines = [line.strip() for line in block.strip().splitlines() if line.strip()]
        if not lines:
            continue
        block_is_list = True
        for line in lines:
            if re.match(r"^([-*•]|\d+[.)])\s+", line):
                list_items += 1
            else:
                block_is_list = False
        if block_is_list:
            continue
        first = lines[0]
        if len(lines) == 1 and (first.startswith("#") or (len(first.split()) <= 10 and not first.endswith((".", "!", "?", ":")))):
            headings += 1
        else:
            paragraphs += 1
    return {"headings": headings, "paragraphs": paragraphs, "lists": list_items}
