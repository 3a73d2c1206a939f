import re
from typing import List, Sequence

_NON_WORD = re.compile(r'[^\w\s]')


def tokenize(text: str) -> List[str]:
    return [w for w in _NON_WORD.sub(' ', (text or '').lower()).split() if len(w) > 2]


def text_similarity(text1: str, text2: str) -> float:
    """Token-set Jaccard blended 80/20 with a length ratio. Returns [0, 1]."""
    words1 = set(tokenize(text1))
    words2 = set(tokenize(text2))

    union = words1 | words2
    if not union:
        return 1.0

    jaccard = len(words1 & words2) / len(union)

    longest = max(len(text1), len(text2))
    length_similarity = 1 - abs(len(text1) - len(text2)) / longest if longest else 1.0

    return jaccard * 0.8 + length_similarity * 0.2


def pairwise_mean_similarity(texts: Sequence[str]) -> float:
    comparisons = 0
    total = 0.0
    for i in range(len(texts)):
        for j in range(i + 1, len(texts)):
            total += text_similarity(texts[i], texts[j])
            comparisons += 1
    return total / comparisons if comparisons else 1.0
