"""Small string and input helpers used by the user programs."""


def atoi(s):
    """Parse the leading run of decimal digits of ``s``; no sign, no spaces."""
    n = 0
    for ch in s:
        if not "0" <= ch <= "9":
            break
        n = n * 10 + (ord(ch) - ord("0"))
    return n


def _until_nul(s):
    end = s.find("\0")
    return s if end < 0 else s[:end]


def strcmp(p, q):
    """Compare two strings character by character, returning the code difference."""
    p = _until_nul(p)
    q = _until_nul(q)
    for a, b in zip(p, q):
        if a != b:
            return ord(a) - ord(b)
    if len(p) == len(q):
        return 0
    if len(p) > len(q):
        return ord(p[len(q)])
    return -ord(q[len(p)])


def gets(stream, max):
    """Read one line of at most ``max - 1`` characters, keeping the terminator."""
    chars = []
    while len(chars) + 1 < max:
        c = stream.read(1)
        if not c:
            break
        chars.append(c)
        if c in ("\n", "\r"):
            break
    return "".join(chars)