import re
from urllib.parse import urlparse


class JoinCodeError(ValueError):
    """Raised when a join code cannot be extracted from user input."""


# Join links look like https://host/join/TACO or https://host/join/TACO/
JOIN_PATH_PATTERN = re.compile(r"/join/([A-Za-z]+)/?$")
CODE_PATTERN = re.compile(r"^[A-Za-z]+$")


def parse_join_code(input_str: str) -> str:
    """
    Extracts the share code from a join URL or a typed/spoken code.
    The result is upper-cased so that "taco" and "TACO" resolve alike.
    """
    if not input_str or not input_str.strip():
        raise JoinCodeError("Input string cannot be empty or whitespace")

    value = input_str.strip()

    if not value.startswith("http"):
        if not CODE_PATTERN.match(value):
            raise JoinCodeError("Share codes contain letters only")
        return value.upper()

    parsed = urlparse(value)
    match = JOIN_PATH_PATTERN.search(parsed.path)
    if match:
        return match.group(1).upper()

    raise JoinCodeError("Could not find share code in URL")


def build_join_url(base_url: str, code: str) -> str:
    """Builds the link guests open to join a split."""
    return f"{base_url.rstrip('/')}/join/{code.upper()}"
