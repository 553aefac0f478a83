import re

CODE_PREFIX = 'ESC'
MAX_SEQUENCE = 999

CODE_RE = re.compile(r'^ESC-(\d{4})-(\d{3})$')


def format_code(year: int, sequence: int) -> str:
    return f"{CODE_PREFIX}-{year:04d}-{sequence:03d}"


def parse_code(code: str):
    """Return ``(year, sequence)`` for a valid escrow code, else None."""
    match = CODE_RE.match(code or '')
    if not match:
        return None
    year, sequence = int(match.group(1)), int(match.group(2))
    if not 1 <= sequence <= MAX_SEQUENCE:
        return None
    return year, sequence


def is_valid_code(code: str) -> bool:
    return parse_code(code) is not None
