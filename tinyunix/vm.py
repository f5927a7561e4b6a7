"""Sv39-style three-level page tables over a simulated physical memory."""

from __future__ import annotations

import enum

PGSIZE = 4096
PGSHIFT = 12
MAXVA = 1 << (9 + 9 + 9 + 12 - 1)
_PTE_BYTES = 8
_PTES_PER_PAGE = PGSIZE // _PTE_BYTES
_FLAG_MASK = 0x3FF


class VMError(Exception):
    """An unrecoverable inconsistency in the page tables (a kernel panic)."""


class Perm(enum.IntFlag):
    """Page-table entry flag bits."""

    V = 1 << 0
    R = 1 << 1
    W = 1 << 2
    X = 1 << 3
    U = 1 << 4


def pg_round_up(a):
    """Round ``a`` up to a page boundary."""
    return (a + PGSIZE - 1) & ~(PGSIZE - 1)


def pg_round_down(a):
    """Round ``a`` down to a page boundary."""
    return a & ~(PGSIZE - 1)


def px(level, va):
    """Extract the 9-bit page-table index for ``level`` from ``va``."""
    return (va >> (PGSHIFT + 9 * level)) & 0x1FF


def _pa2pte(pa):
    return (pa >> PGSHIFT) << 10


def _pte2pa(pte):
    return (pte >> 10) << PGSHIFT


class PhysicalMemory:
    """A run of ``npages`` physical pages starting at address ``base``."""

    def __init__(self, npages, base=0x80000000):
        if npages < 0:
            raise ValueError("npages must not be negative")
        if base % PGSIZE:
            raise ValueError("base must be page aligned")
        self.base = base
        self.npages = npages
        self._data = bytearray(npages * PGSIZE)
        # Freed pages are pushed in ascending order, so the highest comes out first.
        self._free = [base + i * PGSIZE for i in range(npages)]
        self._free_set = set(self._free)

    def _check(self, pa, n):
        if pa < self.base or pa + n > self.base + len(self._data):
            raise VMError(f"physical address {pa:#x} out of range")
        return pa - self.base

    def kalloc(self):
        """Allocate one page and return its address, or None when none are left."""
        if not self._free:
            return None
        pa = self._free.pop()
        self._free_set.discard(pa)
        return pa

    def kfree(self, pa):
        """Return the page at ``pa`` to the free pool."""
        if pa % PGSIZE or pa < self.base or pa >= self.base + len(self._data):
            raise VMError("kfree")
        if pa in self._free_set:
            raise VMError("kfree: double free")
        self._free.append(pa)
        self._free_set.add(pa)

    def read(self, pa, n):
        """Return ``n`` bytes starting at ``pa``."""
        off = self._check(pa, n)
        return bytes(self._data[off:off + n])

    def write(self, pa, data):
        """Store ``data`` starting at ``pa``."""
        off = self._check(pa, len(data))
        self._data[off:off + len(data)] = data

    def free_pages(self):
        """Number of pages currently free."""
        return len(self._free)

    def _zero(self, pa):
        self.write(pa, bytes(PGSIZE))


class PageTable:
    """A user page table whose pages live in a :class:`PhysicalMemory`."""

    def __init__(self, mem):
        self.mem = mem
        root = mem.kalloc()
        if root is None:
            raise VMError("uvmcreate: out of memory")
        mem._zero(root)
        self.root = root

    def _load(self, slot):
        return int.from_bytes(self.mem.read(slot, _PTE_BYTES), "little")

    def _store(self, slot, pte):
        self.mem.write(slot, pte.to_bytes(_PTE_BYTES, "little"))

    def walk(self, va, alloc=False):
        """Return the physical address of the leaf PTE for ``va``, or None.

        With ``alloc`` set, missing page-table pages are created; None is then
        returned only when memory runs out.
        """
        if va >= MAXVA or va < 0:
            raise VMError("walk")
        table = self.root
        for level in (2, 1):
            slot = table + _PTE_BYTES * px(level, va)
            pte = self._load(slot)
            if pte & Perm.V:
                table = _pte2pa(pte)
            else:
                if not alloc:
                    return None
                new = self.mem.kalloc()
                if new is None:
                    return None
                self.mem._zero(new)
                self._store(slot, _pa2pte(new) | Perm.V)
                table = new
        return table + _PTE_BYTES * px(0, va)

    def walkaddr(self, va):
        """Physical address of the user page holding ``va``, or None if not mapped."""
        if va >= MAXVA or va < 0:
            return None
        slot = self.walk(va)
        if slot is None:
            return None
        pte = self._load(slot)
        if not pte & Perm.V or not pte & Perm.U:
            return None
        return _pte2pa(pte)

    def mappages(self, va, size, pa, perm):
        """Map ``size`` bytes at ``va`` to physical memory starting at ``pa``.

        Raises MemoryError when a page-table page cannot be allocated.
        """
        if size <= 0:
            raise ValueError("mapping size must be positive")
        a = pg_round_down(va)
        last = pg_round_down(va + size - 1)
        while True:
            slot = self.walk(a, True)
            if slot is None:
                raise MemoryError("out of page-table pages")
            if self._load(slot) & Perm.V:
                raise VMError("remap")
            self._store(slot, _pa2pte(pa) | int(perm) | Perm.V)
            if a == last:
                return
            a += PGSIZE
            pa += PGSIZE

    def unmap(self, va, size, do_free):
        """Remove existing mappings for ``size`` bytes at ``va``, optionally freeing the pages."""
        if size <= 0:
            raise ValueError("unmap size must be positive")
        a = pg_round_down(va)
        last = pg_round_down(va + size - 1)
        while True:
            slot = self.walk(a)
            if slot is None:
                raise VMError("uvmunmap: walk")
            pte = self._load(slot)
            if not pte & Perm.V:
                raise VMError(f"uvmunmap: not mapped (va={a:#x} pte={pte:#x})")
            if pte & _FLAG_MASK == Perm.V:
                raise VMError("uvmunmap: not a leaf")
            if do_free:
                self.mem.kfree(_pte2pa(pte))
            self._store(slot, 0)
            if a == last:
                return
            a += PGSIZE

    def init_code(self, src):
        """Load ``src`` (less than one page) at virtual address 0."""
        if len(src) >= PGSIZE:
            raise VMError("inituvm: more than a page")
        page = self.mem.kalloc()
        if page is None:
            raise MemoryError("out of memory")
        self.mem._zero(page)
        self.mappages(0, PGSIZE, page, Perm.W | Perm.R | Perm.X | Perm.U)
        self.mem.write(page, bytes(src))

    def grow(self, oldsz, newsz):
        """Allocate zeroed user pages to grow from ``oldsz`` to ``newsz``; return ``newsz``.

        On running out of memory the pages added so far are released and
        MemoryError is raised.
        """
        if newsz < oldsz:
            return oldsz
        oldsz = pg_round_up(oldsz)
        for a in range(oldsz, newsz, PGSIZE):
            page = self.mem.kalloc()
            if page is None:
                self.shrink(a, oldsz)
                raise MemoryError("out of memory")
            self.mem._zero(page)
            try:
                self.mappages(a, PGSIZE, page, Perm.W | Perm.X | Perm.R | Perm.U)
            except MemoryError:
                self.mem.kfree(page)
                self.shrink(a, oldsz)
                raise
        return newsz

    def shrink(self, oldsz, newsz):
        """Release user pages to bring the size from ``oldsz`` to ``newsz``; return the new size."""
        if newsz >= oldsz:
            return oldsz
        newup = pg_round_up(newsz)
        if newup < pg_round_up(oldsz):
            self.unmap(newup, oldsz - newup, True)
        return newsz

    def _freewalk(self, table):
        for i in range(_PTES_PER_PAGE):
            slot = table + i * _PTE_BYTES
            pte = self._load(slot)
            if pte & Perm.V and not pte & (Perm.R | Perm.W | Perm.X):
                self._freewalk(_pte2pa(pte))
                self._store(slot, 0)
            elif pte & Perm.V:
                raise VMError("freewalk: leaf")
        self.mem.kfree(table)

    def free(self, sz):
        """Free ``sz`` bytes of user memory and then every page-table page."""
        if sz > 0:
            self.unmap(0, sz, True)
        self._freewalk(self.root)
        self.root = None

    def copy_to(self, other, sz):
        """Copy the first ``sz`` bytes of memory and their mappings into ``other``.

        On running out of memory everything copied so far is released and
        MemoryError is raised.
        """
        for i in range(0, sz, PGSIZE):
            slot = self.walk(i)
            if slot is None:
                raise VMError("uvmcopy: pte should exist")
            pte = self._load(slot)
            if not pte & Perm.V:
                raise VMError("uvmcopy: page not present")
            pa = _pte2pa(pte)
            flags = pte & _FLAG_MASK
            page = self.mem.kalloc()
            if page is None:
                self._undo_copy(other, i)
                raise MemoryError("out of memory")
            self.mem.write(page, self.mem.read(pa, PGSIZE))
            try:
                other.mappages(i, PGSIZE, page, flags)
            except MemoryError:
                self.mem.kfree(page)
                self._undo_copy(other, i)
                raise

    @staticmethod
    def _undo_copy(other, copied):
        if copied > 0:
            other.unmap(0, copied, True)

    def clear_user(self, va):
        """Make the page at ``va`` inaccessible to user mode (stack guard page)."""
        slot = self.walk(va)
        if slot is None:
            raise VMError("uvmclear")
        self._store(slot, self._load(slot) & ~Perm.U)

    def _user_page(self, va0):
        pa0 = self.walkaddr(va0)
        if pa0 is None:
            raise ValueError(f"user address {va0:#x} is not mapped")
        return pa0

    def copyout(self, dstva, data):
        """Copy ``data`` to user virtual address ``dstva``; ValueError if unmapped."""
        data = bytes(data)
        pos = 0
        while pos < len(data):
            va0 = pg_round_down(dstva)
            pa0 = self._user_page(va0)
            n = min(PGSIZE - (dstva - va0), len(data) - pos)
            self.mem.write(pa0 + (dstva - va0), data[pos:pos + n])
            pos += n
            dstva = va0 + PGSIZE

    def copyin(self, srcva, n):
        """Return ``n`` bytes read from user virtual address ``srcva``; ValueError if unmapped."""
        parts = []
        while n > 0:
            va0 = pg_round_down(srcva)
            pa0 = self._user_page(va0)
            step = min(PGSIZE - (srcva - va0), n)
            parts.append(self.mem.read(pa0 + (srcva - va0), step))
            n -= step
            srcva = va0 + PGSIZE
        return b"".join(parts)

    def copyinstr(self, srcva, max):
        """Return the NUL-terminated string at ``srcva`` without its NUL.

        Raises ValueError when an address is unmapped or no NUL appears within
        ``max`` bytes.
        """
        parts = []
        while max > 0:
            va0 = pg_round_down(srcva)
            pa0 = self._user_page(va0)
            n = min(PGSIZE - (srcva - va0), max)
            chunk = self.mem.read(pa0 + (srcva - va0), n)
            end = chunk.find(b"\0")
            if end >= 0:
                parts.append(chunk[:end])
                return b"".join(parts)
            parts.append(chunk)
            max -= n
            srcva = va0 + PGSIZE
        raise ValueError("string not terminated within limit")