"""
Tokenizer for flight search ranking.

Tokenization pipeline:
1. Lowercase conversion
2. Replace every character outside [a-z0-9], whitespace and "-" with a space
3. Split on whitespace runs
4. Drop empty tokens

No stopwords and no stemming: flight documents are short codes and names
("emirates dxb lhr boeing 777-300er economy") where every token counts.
"""

import re
from typing import List

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")


def tokenize(text: str) -> List[str]:
    """
    Tokenize text for BM25 and TF-IDF scoring.

    Args:
        text: Input text (None and empty strings are allowed)

    Returns:
        List of lowercase tokens

    Examples:
        >>> tokenize("Emirates DXB->LHR")
        ['emirates', 'dxb-', 'lhr']

        >>> tokenize("Boeing 777-300ER, Business!")
        ['boeing', '777-300er', 'business']

        >>> tokenize("   ")
        []
    """
    if not text:
        return []
    return _DISALLOWED.sub(" ", text.lower()).split()
