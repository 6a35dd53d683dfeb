"""
String similarity.

Classic dynamic-programming Levenshtein distance. Insertions, deletions
and substitutions each cost 1. Comparison is case-insensitive.
"""


def levenshtein_distance(first: str, second: str) -> int:
    """
    Compute the edit distance between two strings, ignoring case.

    Args:
        first: First string
        second: Second string

    Returns:
        Minimum number of single-character edits turning one into the other
    """
    a = (first or "").lower()
    b = (second or "").lower()

    rows, cols = len(a) + 1, len(b) + 1
    matrix = [[0] * cols for _ in range(rows)]

    for i in range(rows):
        matrix[i][0] = i
    for j in range(cols):
        matrix[0][j] = j

    for i in range(1, rows):
        for j in range(1, cols):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            matrix[i][j] = min(
                matrix[i - 1][j] + 1,  # deletion
                matrix[i][j - 1] + 1,  # insertion
                matrix[i - 1][j - 1] + cost,  # substitution
            )

    return matrix[rows - 1][cols - 1]
