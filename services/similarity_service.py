def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance with unit insert/delete/substitute costs.
    Keeps two rows of the DP table, sized by the shorter string.
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """
    Normalised similarity in [0, 1]: (maxLen - editDistance) / maxLen.
    Comparison is character-exact (no case folding or normalisation).
    """
    if a == b:
        return 1.0
    max_len = max(len(a), len(b))
    return (max_len - edit_distance(a, b)) / max_len
