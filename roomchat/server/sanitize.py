import re


def sanitize_input(value) -> str:
    """Strip markup that could be rendered as HTML or script by a client.

    Trims the value, then removes angle brackets, ``javascript:`` scheme
    markers and inline event-handler patterns such as ``onclick=``.
    Non-string input sanitizes to the empty string.
    """
    if not isinstance(value, str):
        return ""
    value = value.strip()
    value = re.sub(r"[<>]", "", value)
    value = re.sub(r"javascript:", "", value, flags=re.IGNORECASE)
    value = re.sub(r"on\w+=", "", value, flags=re.IGNORECASE)
    return value
