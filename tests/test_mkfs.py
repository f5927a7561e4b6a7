import io
import struct

import pytest

from tinyunix.mkfs import (
    ROOTINO,
    T_DIR,
    T_FILE,
    DiskInode,
    FsLayout,
    ImageBuilder,
    build_image,
    main,
    xint,
    xshort,
)

SMALL = FsLayout(block_size=64, fs_size=200, ninodes=8, nlog=2)


def _block(raw, layout, n):
    bs = layout.block_size
    return raw[n * bs:(n + 1) * bs]


def _dirents(raw, layout, din):
    entries = []
    fmt = f"<H{layout.dirsiz}s"
    for addr in din.addrs[:layout.ndirect]:
        if addr == 0:
            continue
        block = _block(raw, layout, addr)
        for off in range(0, layout.block_size, layout.dirent_size):
            inum, name = struct.unpack(fmt, block[off:off + layout.dirent_size])
            if inum:
                entries.append((inum, name.rstrip(b"\0")))
    return entries


def test_xshort_little_endian():
    assert xshort(0x1234) == b"\x34\x12"


def test_xint_little_endian():
    assert xint(0x01020304) == b"\x04\x03\x02\x01"


def test_layout_invariants():
    layout = FsLayout()
    assert layout.nmeta == 2 + layout.nlog + layout.ninodeblocks + layout.nbitmap
    assert layout.nmeta + layout.nblocks == layout.fs_size
    assert layout.bmapstart == layout.inodestart + layout.ninodeblocks
    assert layout.block_size % layout.dinode_size == 0


def test_layout_rejects_bad_block_size():
    with pytest.raises(ValueError):
        FsLayout(block_size=100)


def test_image_size_and_superblock():
    image = io.BytesIO()
    ImageBuilder(image, SMALL)
    raw = image.getvalue()
    assert len(raw) == SMALL.fs_size * SMALL.block_size
    fields = struct.unpack("<8I", _block(raw, SMALL, 1)[:32])
    assert fields == (
        SMALL.magic,
        SMALL.fs_size,
        SMALL.nblocks,
        SMALL.ninodes,
        SMALL.nlog,
        SMALL.logstart,
        SMALL.inodestart,
        SMALL.bmapstart,
    )


def test_root_directory_has_dot_entries():
    image = io.BytesIO()
    builder = ImageBuilder(image, SMALL)
    assert builder.rootino == ROOTINO
    root = builder.rinode(ROOTINO)
    assert root.type == T_DIR
    assert root.nlink == 1
    assert root.size == 2 * SMALL.dirent_size
    assert _dirents(image.getvalue(), SMALL, root) == [(ROOTINO, b"."), (ROOTINO, b"..")]


def test_add_file_contents_and_entry():
    image = io.BytesIO()
    builder = ImageBuilder(image, SMALL)
    inum = builder.add_file("hello", b"hi there")
    din = builder.rinode(inum)
    assert din.type == T_FILE
    assert din.size == len(b"hi there")
    raw = image.getvalue()
    assert _block(raw, SMALL, din.addrs[0])[:8] == b"hi there"
    assert (inum, b"hello") in _dirents(raw, SMALL, builder.rinode(ROOTINO))


def test_large_file_uses_indirect_block():
    image = io.BytesIO()
    builder = ImageBuilder(image, SMALL)
    data = bytes(range(256)) * 5
    inum = builder.add_file("big", data)
    din = builder.rinode(inum)
    assert din.size == len(data)
    assert din.addrs[SMALL.ndirect] != 0
    raw = image.getvalue()
    indirect = struct.unpack(
        f"<{SMALL.nindirect}I", _block(raw, SMALL, din.addrs[SMALL.ndirect])
    )
    blocks = list(din.addrs[:SMALL.ndirect]) + [b for b in indirect if b]
    content = b"".join(_block(raw, SMALL, b) for b in blocks)
    assert content[:len(data)] == data


def test_appends_accumulate():
    image = io.BytesIO()
    builder = ImageBuilder(image, SMALL)
    inum = builder.add_file("f", b"abc")
    builder.iappend(inum, b"x" * 100)
    din = builder.rinode(inum)
    assert din.size == 103
    raw = image.getvalue()
    joined = _block(raw, SMALL, din.addrs[0]) + _block(raw, SMALL, din.addrs[1])
    assert joined[:103] == b"abc" + b"x" * 100


def test_file_too_large_raises():
    builder = ImageBuilder(io.BytesIO(), SMALL)
    with pytest.raises(ValueError):
        builder.add_file("huge", bytes(SMALL.maxfile * SMALL.block_size + 1))


def test_name_with_slash_raises():
    builder = ImageBuilder(io.BytesIO(), SMALL)
    with pytest.raises(ValueError):
        builder.add_file("a/b", b"")


def test_long_name_truncated():
    image = io.BytesIO()
    builder = ImageBuilder(image, SMALL)
    name = "abcdefghijklmnopqrst"
    inum = builder.add_file(name, b"")
    entries = _dirents(image.getvalue(), SMALL, builder.rinode(ROOTINO))
    assert (inum, name[:SMALL.dirsiz].encode()) in entries


def test_inodes_run_out():
    builder = ImageBuilder(io.BytesIO(), SMALL)
    numbers = [builder.ialloc(T_FILE) for _ in range(SMALL.ninodes - 2)]
    assert numbers == list(range(2, SMALL.ninodes))
    with pytest.raises(ValueError):
        builder.ialloc(T_FILE)


def test_winode_rinode_round_trip():
    builder = ImageBuilder(io.BytesIO(), SMALL)
    din = DiskInode(type=T_FILE, major=1, minor=2, nlink=3, size=7, addrs=[5, 6])
    builder.winode(4, din)
    back = builder.rinode(4)
    assert back.type == T_FILE and back.nlink == 3 and back.size == 7
    assert back.addrs[:2] == [5, 6]
    assert len(back.addrs) == SMALL.ndirect + 1


def test_finish_rounds_root_and_writes_bitmap():
    image = io.BytesIO()
    builder = ImageBuilder(image, SMALL)
    builder.add_file("a", b"data")
    before = builder.rinode(ROOTINO).size
    used = builder.finish()
    after = builder.rinode(ROOTINO).size
    assert after % SMALL.block_size == 0
    assert after > before
    assert used == builder.freeblock
    bitmap = _block(image.getvalue(), SMALL, SMALL.bmapstart)
    assert sum(bin(b).count("1") for b in bitmap) == used
    assert bitmap[0] == 0xFF


def test_build_image_strips_prefixes(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "user").mkdir()
    (tmp_path / "user" / "_cat").write_bytes(b"meow")
    (tmp_path / "README").write_bytes(b"readme")
    used = build_image("fs.img", ["README", "user/_cat"], SMALL)
    raw = (tmp_path / "fs.img").read_bytes()
    builder_view = ImageBuilder(io.BytesIO(raw), SMALL)  # rebuilds; used only for layout helpers
    assert builder_view.layout == SMALL
    root = DiskInode.unpack(
        _block(raw, SMALL, SMALL.iblock(ROOTINO))[
            (ROOTINO % SMALL.ipb) * SMALL.dinode_size:
        ],
        SMALL,
    )
    names = [name for _, name in _dirents(raw, SMALL, root)]
    assert names == [b".", b"..", b"README", b"cat"]
    assert used > SMALL.nmeta


def test_build_image_rejects_nested_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "f").write_bytes(b"x")
    with pytest.raises(ValueError):
        build_image("fs.img", ["sub/f"], SMALL)


def test_main_usage(capsys):
    assert main([]) == 1
    assert "Usage: mkfs fs.img files..." in capsys.readouterr().err


def test_main_builds_image(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "README").write_bytes(b"hello")
    assert main(["fs.img", "README"]) == 0
    out = capsys.readouterr().out
    assert "balloc: first" in out
    layout = FsLayout()
    assert (tmp_path / "fs.img").stat().st_size == layout.fs_size * layout.block_size


def test_main_missing_file(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["fs.img", "nosuchfile"]) == 1
    assert "nosuchfile" in capsys.readouterr().err