"""Reader and writer for flat ``key=value`` property files.

Accepts the ``.properties`` grammar: ``=``, ``:`` or whitespace as the
key/value separator, ``#`` and ``!`` comment lines, backslash line
continuation and backslash escapes (including ``\\uXXXX``). Writes the
plain ``key=value`` form, one entry per line, with no header comment.
"""

from __future__ import annotations

import typing

_WHITESPACE = " \t\f"
_SEPARATORS = "=:"

_UNESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_HEX_DIGITS = "0123456789abcdefABCDEF"
_ESCAPES = {"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r", "\f": "\\f"}


class PropertiesError(ValueError):
    """Raised for text that cannot be decoded as a property file."""


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def _continues(line: str) -> bool:
    """True when *line* ends in an odd run of backslashes."""
    count = len(line) - len(line.rstrip("\\"))
    return count % 2 == 1


def _logical_lines(lines: typing.Iterable[str]) -> typing.Iterator[tuple[int, str]]:
    """Join continuation lines; skip blanks and comments.

    Yields ``(line_number, text)`` where the number is that of the first
    physical line.
    """
    pending: str | None = None
    start = 0
    for number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n").lstrip(_WHITESPACE)
        if pending is None:
            if not line or line[0] in "#!":
                continue
            start = number
            pending = ""
        if _continues(line):
            pending += line[:-1]
            continue
        yield start, pending + line
        pending = None
    if pending is not None:
        yield start, pending


def _code_unit(text: str, start: int, number: int) -> int:
    """Read the four hex digits of a ``\\u`` escape beginning at *start*."""
    digits = text[start:start + 4]
    if len(digits) != 4 or not all(c in _HEX_DIGITS for c in digits):
        raise PropertiesError(f"line {number}: malformed \\u escape {digits!r}")
    return int(digits, 16)


def _unescape(text: str, number: int) -> str:
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        i += 1
        if i >= len(text):
            break
        ch = text[i]
        if ch != "u":
            out.append(_UNESCAPES.get(ch, ch))
            i += 1
            continue
        unit = _code_unit(text, i + 1, number)
        i += 5
        if 0xDC00 <= unit <= 0xDFFF:
            raise PropertiesError(f"line {number}: unpaired surrogate \\u{unit:04x}")
        if 0xD800 <= unit <= 0xDBFF:
            # Characters outside the BMP arrive as a UTF-16 escape pair.
            if text[i:i + 2] != "\\u":
                raise PropertiesError(f"line {number}: unpaired surrogate \\u{unit:04x}")
            low = _code_unit(text, i + 2, number)
            if not 0xDC00 <= low <= 0xDFFF:
                raise PropertiesError(f"line {number}: unpaired surrogate \\u{unit:04x}")
            unit = 0x10000 + ((unit - 0xD800) << 10) + (low - 0xDC00)
            i += 6
        out.append(chr(unit))
    return "".join(out)


def _split(line: str) -> tuple[str, str]:
    """Split a logical line into raw (still escaped) key and value."""
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch in _SEPARATORS or ch in _WHITESPACE:
            break
        i += 1
    key = line[:i]
    rest = line[i:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def iter_pairs(lines: typing.Iterable[str]) -> typing.Iterator[tuple[str, str]]:
    """Yield decoded ``(key, value)`` pairs in file order."""
    for number, line in _logical_lines(lines):
        key, value = _split(line)
        yield _unescape(key, number), _unescape(value, number)


def loads(text: str) -> dict[str, str]:
    """Parse property text. Later duplicates override earlier ones."""
    return dict(iter_pairs(text.splitlines()))


def load(fp: typing.TextIO) -> dict[str, str]:
    return dict(iter_pairs(fp))


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def _escape(text: str, *, is_key: bool) -> str:
    out: list[str] = []
    for index, ch in enumerate(text):
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch == " " and (is_key or index == 0):
            out.append("\\ ")
        elif is_key and ch in "=:#!":
            out.append("\\" + ch)
        else:
            out.append(ch)
    return "".join(out)


def dumps(entries: typing.Mapping[str, str]) -> str:
    """Render *entries* as ``key=value`` lines in mapping order."""
    return "".join(
        f"{_escape(key, is_key=True)}={_escape(value, is_key=False)}\n"
        for key, value in entries.items()
    )


def dump(entries: typing.Mapping[str, str], fp: typing.TextIO) -> None:
    fp.write(dumps(entries))
