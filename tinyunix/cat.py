"""Concatenate files to standard output."""

import sys

from tinyunix.fmt import printf

_CHUNK = 512


def cat(stream, out):
    """Copy binary ``stream`` to ``out``; raise OSError on a read or short write."""
    while True:
        try:
            chunk = stream.read(_CHUNK)
        except OSError as exc:
            raise OSError("cat: read error") from exc
        if not chunk:
            return
        try:
            written = out.write(chunk)
        except OSError as exc:
            raise OSError("cat: write error") from exc
        if written is not None and written != len(chunk):
            raise OSError("cat: write error")


def _copy(stream):
    out = sys.stdout.buffer
    try:
        cat(stream, out)
    except OSError as exc:
        printf("%s\n", exc)
        return False
    finally:
        out.flush()
    return True


def main(argv=None):
    """Copy the named files, or standard input, to standard output."""
    args = sys.argv[1:] if argv is None else list(argv)
    sys.stdout.flush()
    if not args:
        _copy(sys.stdin.buffer)
        return 1
    for name in args:
        try:
            stream = open(name, "rb")
        except OSError:
            printf("cat: cannot open %s\n", name)
            return 1
        with stream:
            if not _copy(stream):
                return 1
    return 0