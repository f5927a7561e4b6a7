import pytest

from tinyunix.umalloc import Allocator


def test_fresh_allocator_has_no_free_blocks():
    assert Allocator().free_blocks() == []


def test_pointers_are_aligned_and_disjoint():
    alloc = Allocator(unit=16)
    sizes = [1, 15, 16, 17, 100, 1000, 0]
    regions = []
    for n in sizes:
        p = alloc.malloc(n)
        assert p is not None
        assert p % 16 == 0
        regions.append((p, p + n))
    regions.sort()
    for (_, end), (start, _) in zip(regions, regions[1:]):
        assert end <= start


def test_free_all_coalesces_to_one_block():
    alloc = Allocator(unit=16)
    ptrs = [alloc.malloc(n) for n in (10, 200, 3000, 40)]
    for p in (ptrs[2], ptrs[0], ptrs[3], ptrs[1]):
        alloc.free(p)
    assert alloc.free_blocks() == [(0, 4096 * 16)]


def test_freed_memory_is_reused():
    alloc = Allocator()
    p = alloc.malloc(100)
    alloc.free(p)
    assert alloc.malloc(100) == p


def test_request_beyond_limit_fails():
    alloc = Allocator(limit=4096 * 16, unit=16)
    assert alloc.malloc(4096 * 16) is None
    assert alloc.malloc(100) is not None


def test_exhaust_free_and_allocate_again():
    alloc = Allocator(limit=4096 * 16 * 4, unit=16)
    ptrs = []
    while True:
        p = alloc.malloc(10001)
        if p is None:
            break
        ptrs.append(p)
        assert len(ptrs) < 1000
    assert ptrs
    for p in ptrs:
        alloc.free(p)
    assert alloc.malloc(1024 * 20) is not None


def test_free_sizes_plus_used_cover_arena():
    alloc = Allocator(unit=16)
    a = alloc.malloc(64)
    alloc.malloc(64)
    alloc.free(a)
    free_total = sum(size for _, size in alloc.free_blocks())
    assert free_total + (64 // 16 + 1) * 16 == 4096 * 16


def test_double_free_raises():
    alloc = Allocator()
    p = alloc.malloc(8)
    alloc.free(p)
    with pytest.raises(ValueError):
        alloc.free(p)


def test_free_of_unknown_pointer_raises():
    alloc = Allocator()
    alloc.malloc(8)
    with pytest.raises(ValueError):
        alloc.free(3)


def test_negative_size_raises():
    with pytest.raises(ValueError):
        Allocator().malloc(-1)