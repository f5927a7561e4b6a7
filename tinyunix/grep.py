"""Simple grep supporting only the ^ . * $ operators."""

import sys

from tinyunix.fmt import fprintf, printf

_BUFSIZE = 1024


def match(re, text):
    """Search for ``re`` anywhere in ``text``."""
    if re.startswith("^"):
        return matchhere(re[1:], text)
    for start in range(len(text) + 1):
        if matchhere(re, text[start:]):
            return True
    return False


def matchhere(re, text):
    """Search for ``re`` at the beginning of ``text``."""
    if not re:
        return True
    if len(re) > 1 and re[1] == "*":
        return matchstar(re[0], re[2:], text)
    if re == "$":
        return text == ""
    if text and (re[0] == "." or re[0] == text[0]):
        return matchhere(re[1:], text[1:])
    return False


def matchstar(c, re, text):
    """Search for ``c*re`` at the beginning of ``text``."""
    while True:
        if matchhere(re, text):
            return True
        if not text or not (text[0] == c or c == "."):
            return False
        text = text[1:]


def grep(pattern, stream, out):
    """Copy the complete lines of binary ``stream`` that match ``pattern`` to ``out``.

    A final line without a newline is not printed, and a line that fills the
    whole buffer ends the search.
    """
    pending = b""
    while True:
        chunk = stream.read(_BUFSIZE - 1 - len(pending))
        if not chunk:
            break
        *lines, pending = (pending + chunk).split(b"\n")
        for line in lines:
            if match(pattern, line.decode("latin-1")):
                out.write(line + b"\n")


def main(argv=None):
    """Run grep over the named files, or standard input; return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        fprintf(sys.stderr, "usage: grep pattern [file ...]\n")
        return 1
    pattern, files = args[0], args[1:]
    out = sys.stdout.buffer
    if not files:
        grep(pattern, sys.stdin.buffer, out)
        out.flush()
        return 0
    for name in files:
        try:
            stream = open(name, "rb")
        except OSError:
            printf("grep: cannot open %s\n", name)
            sys.stdout.flush()
            return 1
        with stream:
            sys.stdout.flush()
            grep(pattern, stream, out)
            out.flush()
    return 0