# apphost/core/command_parser.py

"""
Split a raw program command into executable + arguments.

Rules:
- whitespace separates tokens
- a double quote opens a token that runs to the next double quote
  (quotes are dropped) or to the end of the string if never closed
- nothing else is special: |, &&, > etc. are plain characters
"""

from __future__ import annotations

from typing import List, Tuple


def tokenize(raw: str) -> List[str]:
    tokens: List[str] = []
    i = 0
    n = len(raw or "")

    while i < n:
        ch = raw[i]

        if ch.isspace():
            i += 1
            continue

        if ch == '"':
            end = raw.find('"', i + 1)
            if end < 0:
                tokens.append(raw[i + 1:])
                break
            tokens.append(raw[i + 1:end])
            i = end + 1
            continue

        start = i
        while i < n and not raw[i].isspace():
            i += 1
        tokens.append(raw[start:i])

    return tokens


def parse_command(raw: str) -> Tuple[str, List[str]]:
    """
    Parse a command line into (executable, args).

    Empty or whitespace-only input gives ("", []), which callers treat as
    "nothing to launch".
    """
    tokens = tokenize(raw)
    if not tokens:
        return "", []
    return tokens[0], tokens[1:]
