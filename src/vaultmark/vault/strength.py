"""Password strength scoring shown next to vault entries."""

import re

MAX_SCORE = 5


def calculate_password_strength(password: str) -> int:
    """Score 0..5: one point each for length >= 8, length >= 12, an
    uppercase letter, a digit and a symbol."""
    if not password:
        return 0
    score = 0
    if len(password) >= 8:
        score += 1
    if len(password) >= 12:
        score += 1
    if re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"[0-9]", password):
        score += 1
    if re.search(r"[^A-Za-z0-9]", password):
        score += 1
    return score


def strength_label(score: int) -> str:
    if score <= 0:
        return ""
    if score <= 2:
        return "Weak"
    if score <= 3:
        return "Medium"
    return "Strong"
