"""A first-fit free-list allocator over a simulated, growable heap."""

_BASE = -1
_MIN_GROWTH = 4096


class Allocator:
    """Free-list allocator; addresses are byte offsets into the heap arena.

    The heap grows in steps of at least 4096 header units, and never beyond
    ``limit`` bytes.  ``unit`` is the size in bytes of one block header.
    """

    def __init__(self, limit=1 << 26, unit=16):
        if unit <= 0:
            raise ValueError("unit must be positive")
        if limit < 0:
            raise ValueError("limit must not be negative")
        self.limit = limit
        self.unit = unit
        self._size = {}
        self._next = {}
        self._freep = None
        self._brk = 0
        self._allocated = set()

    def _morecore(self, nunits):
        nu = max(nunits, _MIN_GROWTH)
        if (self._brk + nu) * self.unit > self.limit:
            return None
        hp = self._brk
        self._brk += nu
        self._size[hp] = nu
        self._release(hp)
        return self._freep

    def _release(self, bp):
        size, nxt = self._size, self._next
        p = self._freep
        while not (p < bp < nxt[p]):
            if p >= nxt[p] and (bp > p or bp < nxt[p]):
                break
            p = nxt[p]
        if bp + size[bp] == nxt[p]:
            absorbed = nxt[p]
            size[bp] += size[absorbed]
            nxt[bp] = nxt[absorbed]
            del size[absorbed], nxt[absorbed]
        else:
            nxt[bp] = nxt[p]
        if p + size[p] == bp:
            size[p] += size[bp]
            nxt[p] = nxt[bp]
            del size[bp], nxt[bp]
        else:
            nxt[p] = bp
        self._freep = p

    def malloc(self, nbytes):
        """Return the address of ``nbytes`` of fresh memory, or None when exhausted."""
        if nbytes < 0:
            raise ValueError("cannot allocate a negative size")
        nunits = (nbytes + self.unit - 1) // self.unit + 1
        if self._freep is None:
            self._next[_BASE] = _BASE
            self._size[_BASE] = 0
            self._freep = _BASE
        prevp = self._freep
        p = self._next[prevp]
        while True:
            if self._size[p] >= nunits:
                if self._size[p] == nunits:
                    self._next[prevp] = self._next[p]
                else:
                    self._size[p] -= nunits
                    p += self._size[p]
                    self._size[p] = nunits
                self._freep = prevp
                self._allocated.add(p)
                return (p + 1) * self.unit
            if p == self._freep:
                p = self._morecore(nunits)
                if p is None:
                    return None
            prevp, p = p, self._next[p]

    def free(self, ptr):
        """Return a block obtained from :meth:`malloc` to the free list."""
        bp, rem = divmod(ptr, self.unit)
        bp -= 1
        if rem or bp not in self._allocated:
            raise ValueError(f"address {ptr} was not allocated")
        self._allocated.remove(bp)
        self._next.pop(bp, None)
        self._release(bp)

    def free_blocks(self):
        """List the free blocks as ``(header address, size in bytes)`` in address order."""
        if self._freep is None:
            return []
        blocks = []
        p = self._next[_BASE]
        while p != _BASE:
            blocks.append((p * self.unit, self._size[p] * self.unit))
            p = self._next[p]
        return blocks