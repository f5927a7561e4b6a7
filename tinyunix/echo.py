"""Print the arguments separated by spaces."""

import sys


def echo(args):
    """Return the text echo prints for ``args``: nothing at all when there are none."""
    args = list(args)
    if not args:
        return ""
    return " ".join(args) + "\n"


def main(argv=None):
    """Write the arguments to standard output and return 0."""
    args = sys.argv[1:] if argv is None else argv
    sys.stdout.write(echo(args))
    sys.stdout.flush()
    return 0