from __future__ import annotations

import re

_TOKEN_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall((text or "").lower())


def normalize(text: str) -> str:
    return " ".join(tokenize(text))


def is_phrase(term: str) -> bool:
    return len(tokenize(term)) > 1


def find_terms(terms: list[str] | tuple[str, ...], tokens: list[str]) -> list[tuple[str, bool]]:
    """
    Return `(term, is_phrase)` for every term present in the token stream.

    Phrases match as a contiguous, word-bounded run inside the normalized text;
    single words require exact token membership.
    """
    padded = f" {' '.join(tokens)} "
    token_set = set(tokens)
    hits: list[tuple[str, bool]] = []
    seen: set[str] = set()
    for term in terms:
        norm = normalize(term)
        if not norm or norm in seen:
            continue
        seen.add(norm)
        if " " in norm:
            if f" {norm} " in padded:
                hits.append((term, True))
        elif norm in token_set:
            hits.append((term, False))
    return hits
