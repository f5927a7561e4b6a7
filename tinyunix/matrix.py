"""Repeated square-matrix multiplication, a CPU-bound workload."""

import sys

LEN = 100
ROUNDS = 300


def _int32(v):
    return ((v + (1 << 31)) % (1 << 32)) - (1 << 31)


def matrix_alloc(size):
    """Return a ``size`` by ``size`` matrix of zeros."""
    if size < 0:
        raise ValueError("size must not be negative")
    return [[0] * size for _ in range(size)]


def matrix_mul(x, y):
    """Return the product of ``x`` and ``y``, with 32-bit wrapping arithmetic."""
    inner = len(y)
    if any(len(row) != inner for row in x):
        raise ValueError("matrix dimensions do not match")
    columns = list(zip(*y)) if y else []
    return [
        [_int32(sum(a * b for a, b in zip(row, col))) for col in columns]
        for row in x
    ]


def main(argv=None):
    """Alternate products of 100x100 matrices 300 times; optional size and rounds."""
    args = sys.argv[1:] if argv is None else list(argv)
    size = int(args[0]) if args else LEN
    rounds = int(args[1]) if len(args) > 1 else ROUNDS
    a = matrix_alloc(size)
    b = matrix_alloc(size)
    c = matrix_alloc(size)
    for i in range(rounds):
        if i % 2 == 0:
            c = matrix_mul(a, b)
        else:
            a = matrix_mul(c, b)
    sys.stdout.write("finished testproc2\n")
    sys.stdout.flush()
    return 0