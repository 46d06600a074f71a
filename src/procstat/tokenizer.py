"""Split raw kernel text into per-line token sequences."""

from enum import Enum


class DelimiterRule(Enum):
    """How a source's lines are split into tokens."""

    WHITESPACE = "whitespace-run"
    COLON_KEY = "colon-key"
    HEADER_TABLE = "header+table"


def _split_colon_key(line: str) -> list[str]:
    key, sep, rest = line.partition(":")
    if not sep:
        return line.split()
    return [key.strip(), *rest.split()]


def _split_table(line: str) -> list[str]:
    # '|' separates column groups in the header, ':' ends the device name.
    return line.replace("|", " ").replace(":", " ").split()


_SPLITTERS = {
    DelimiterRule.WHITESPACE: str.split,
    DelimiterRule.COLON_KEY: _split_colon_key,
    DelimiterRule.HEADER_TABLE: _split_table,
}


def tokenize(text: str, rule: DelimiterRule) -> list[list[str]]:
    """
    Tokenize ``text`` line by line according to ``rule``.

    Blank lines are skipped. Tokenization never fails: a malformed line
    simply yields fewer tokens and the parser decides what that means.
    """
    split = _SPLITTERS[rule]
    lines: list[list[str]] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        tokens = split(line)
        if tokens:
            lines.append(tokens)
    return lines
