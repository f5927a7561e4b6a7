"""Count lines, words and bytes."""

import sys
from dataclasses import dataclass

from tinyunix.fmt import printf

_WHITESPACE = frozenset(b" \r\t\n\v\0")
_CHUNK = 512


@dataclass(frozen=True)
class Counts:
    """Line, word and byte totals of one input."""

    lines: int = 0
    words: int = 0
    chars: int = 0


def count(stream):
    """Count the lines, words and bytes of a binary stream."""
    lines = words = chars = 0
    inword = False
    while True:
        chunk = stream.read(_CHUNK)
        if not chunk:
            break
        chars += len(chunk)
        lines += chunk.count(b"\n")
        for byte in chunk:
            if byte in _WHITESPACE:
                inword = False
            elif not inword:
                words += 1
                inword = True
    return Counts(lines, words, chars)


def _report(stream, name):
    try:
        c = count(stream)
    except OSError:
        printf("wc: read error\n")
        return False
    printf("%d %d %d %s\n", c.lines, c.words, c.chars, name)
    return True


def main(argv=None):
    """Print counts for each named file, or standard input; return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        return 0 if _report(sys.stdin.buffer, "") else 1
    for name in args:
        try:
            stream = open(name, "rb")
        except OSError:
            printf("wc: cannot open %s\n", name)
            return 1
        with stream:
            if not _report(stream, name):
                return 1
    return 0