"""
JSON extraction and repair for judge replies

Small judge models wrap their JSON in prose, stop before the closing brace,
or put raw control characters inside string values. These pure functions
turn such replies into text json.loads accepts.
"""


def extract_json(text: str) -> str:
    """
    Cut the JSON object out of a judge reply, repairing a missing closing brace

    Takes everything from the first '{' to the last '}'. When no '}' follows
    the first '{' the reply was truncated: an odd number of quotes means a
    string value is still open, so a quote is added before the brace.

    Args:
        text: Raw judge reply

    Returns:
        Candidate JSON text, or "" when the reply contains no '{'
    """
    start = text.find("{")
    if start == -1:
        return ""

    end = text.rfind("}")
    if end == -1 or end < start:
        candidate = text[start:].rstrip()
        if candidate.count('"') % 2 != 0:
            candidate += '"'
        candidate += "\n}"
        return fix_json_escaping(candidate)

    return fix_json_escaping(text[start:end + 1])


_ESCAPES = {"\t": "\\t", "\r": "\\r", "\n": "\\n"}


def fix_json_escaping(json_text: str) -> str:
    """
    Escape raw tab, carriage return and newline characters inside string values

    Characters outside strings are left alone, as are existing backslash
    escapes.

    Args:
        json_text: Candidate JSON text

    Returns:
        The text with control characters inside strings escaped
    """
    out = []
    in_string = False
    escaped = False

    for ch in json_text:
        if escaped:
            escaped = False
            out.append(ch)
        elif ch == "\\":
            escaped = True
            out.append(ch)
        elif ch == '"':
            in_string = not in_string
            out.append(ch)
        elif in_string and ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        else:
            out.append(ch)

    return "".join(out)
