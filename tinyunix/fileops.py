"""The ln, rm and mkdir commands."""

import os
import sys

from tinyunix.fmt import fprintf


def _args(argv):
    return sys.argv[1:] if argv is None else list(argv)


def ln_main(argv=None):
    """Make a hard link ``new`` to ``old``; return the exit status."""
    args = _args(argv)
    if len(args) != 2:
        fprintf(sys.stderr, "Usage: ln old new\n")
        return 1
    old, new = args
    try:
        os.link(old, new)
    except OSError:
        fprintf(sys.stderr, "link %s %s: failed\n", old, new)
    return 0


def _remove(name):
    if os.path.isdir(name) and not os.path.islink(name):
        os.rmdir(name)
    else:
        os.unlink(name)


def rm_main(argv=None):
    """Remove each named file or empty directory, stopping at the first failure."""
    args = _args(argv)
    if not args:
        fprintf(sys.stderr, "Usage: rm files...\n")
        return 1
    for name in args:
        try:
            _remove(name)
        except OSError:
            fprintf(sys.stderr, "rm: %s failed to delete\n", name)
            break
    return 0


def mkdir_main(argv=None):
    """Create each named directory, stopping at the first failure."""
    args = _args(argv)
    if not args:
        fprintf(sys.stderr, "Usage: mkdir files...\n")
        return 1
    for name in args:
        try:
            os.mkdir(name)
        except OSError:
            fprintf(sys.stderr, "mkdir: %s failed to create\n", name)
            break
    return 0