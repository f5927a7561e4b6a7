"""Minimal printf-style formatting: %d, %l, %x, %p, %s, %c and %%."""

import sys

_DIGITS = "0123456789ABCDEF"


def _wrap_signed32(value):
    return ((int(value) + (1 << 31)) % (1 << 32)) - (1 << 31)


def _wrap_unsigned(value, bits):
    return int(value) % (1 << bits)


def _render(x, base, negative=False):
    digits = []
    while True:
        digits.append(_DIGITS[x % base])
        x //= base
        if x == 0:
            break
    if negative:
        digits.append("-")
    return "".join(reversed(digits))


def _signed(value, base):
    v = _wrap_signed32(value)
    if v < 0:
        return _render(-v, base, negative=True)
    return _render(v, base)


def _pointer(value):
    v = _wrap_unsigned(value, 64)
    return "0x" + "".join(_DIGITS[(v >> shift) & 0xF] for shift in range(60, -4, -4))


def format(fmt, *args):
    """Render ``fmt`` with ``args``; unknown conversions are echoed verbatim."""
    remaining = iter(args)

    def take():
        try:
            return next(remaining)
        except StopIteration:
            raise ValueError(f"not enough arguments for format {fmt!r}") from None

    out = []
    pending = False
    for c in fmt:
        if not pending:
            if c == "%":
                pending = True
            else:
                out.append(c)
            continue
        pending = False
        if c == "d":
            out.append(_signed(take(), 10))
        elif c == "l":
            out.append(_render(_wrap_unsigned(take(), 32), 10))
        elif c == "x":
            out.append(_render(_wrap_unsigned(take(), 32), 16))
        elif c == "p":
            out.append(_pointer(take()))
        elif c == "s":
            s = take()
            out.append("(null)" if s is None else str(s))
        elif c == "c":
            out.append(chr(int(take()) & 0xFF))
        elif c == "%":
            out.append("%")
        else:
            out.append("%" + c)
    return "".join(out)


def fprintf(stream, fmt, *args):
    """Write the formatted text to ``stream``."""
    stream.write(format(fmt, *args))


def printf(fmt, *args):
    """Write the formatted text to standard output."""
    fprintf(sys.stdout, fmt, *args)