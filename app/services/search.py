"""Пошук підрядка через LIKE / ILIKE."""

LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """% і _ з пошукового рядка шукаються буквально, а не як шаблон."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"
