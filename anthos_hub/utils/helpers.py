"""Common utility functions."""

import base64


def truncate_output(text: str, max_length: int = 4000) -> str:
    """
    Shorten a response body for logs and error messages.

    Only the tail is cut.

    Args:
        text: Text to truncate.
        max_length: Maximum number of characters kept.

    Returns:
        Truncated text with indicator if truncated.
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... [{len(text) - max_length} more chars]"


def encode_secret_value(value: str) -> str:
    """
    Encode a string for the ``data`` map of a Kubernetes Secret.

    Args:
        value: Plain text value.

    Returns:
        Base64 text as the API server expects it.
    """
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def format_error(error: Exception) -> str:
    """
    Format an exception for display.

    Args:
        error: The exception to format.

    Returns:
        Human-readable error string.
    """
    error_type = type(error).__name__
    return f"{error_type}: {str(error)}"
