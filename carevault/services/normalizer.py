import re

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize(text: str) -> str:
    """Canonical form for fuzzy drug/allergy matching.

    "Amoxicillin 500mg", "amoxicillin-500-mg" and "AMOXICILLIN 500 MG" all
    map to "amoxicillin500mg".
    """
    return _NON_ALNUM.sub("", (text or "").lower().strip())


def names_match(a: str, b: str) -> bool:
    """Bidirectional substring test on normalized names."""
    norm_a = normalize(a)
    norm_b = normalize(b)
    return norm_a in norm_b or norm_b in norm_a
