import re
from typing import List, Optional

from recognition.constants.constants import MAX_KEYWORDS, MIN_KEYWORD_LENGTH, STOP_WORDS

ALPHABETIC = re.compile(r"[a-z]+")


def extract_keywords(message: Optional[str]) -> List[str]:
    """
    Extract up to five keywords from a recognition message.

    Tokens are kept in the order they appear. A token qualifies when it is
    at least four letters long, made only of ASCII letters and not a stop
    word. Tokens carrying punctuation or digits are dropped, not stripped.
    Repeated words are kept.
    """
    if not message:
        return []

    keywords = []
    for word in message.lower().split():
        if len(word) < MIN_KEYWORD_LENGTH or word in STOP_WORDS:
            continue
        if not ALPHABETIC.fullmatch(word):
            continue
        keywords.append(word)
        if len(keywords) == MAX_KEYWORDS:
            break
    return keywords
