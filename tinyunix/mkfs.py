"""Build a file-system image holding a root directory and a set of files.

Disk layout:
[ boot block | super block | log | inode blocks | free bit map | data blocks ]
"""

from __future__ import annotations

import os
import struct
import sys
from dataclasses import dataclass, field

T_DIR = 1
T_FILE = 2
T_DEVICE = 3

ROOTINO = 1

_SUPERBLOCK = struct.Struct("<8I")
_DINODE_HEAD = "<hhhhI"


def xshort(x):
    """Encode ``x`` as a 16-bit little-endian value."""
    return (int(x) & 0xFFFF).to_bytes(2, "little")


def xint(x):
    """Encode ``x`` as a 32-bit little-endian value."""
    return (int(x) & 0xFFFFFFFF).to_bytes(4, "little")


@dataclass(frozen=True)
class FsLayout:
    """Sizes that fix where everything sits on the disk."""

    block_size: int = 1024
    fs_size: int = 1000
    ninodes: int = 200
    nlog: int = 30
    ndirect: int = 12
    dirsiz: int = 14
    magic: int = 0x10203040

    def __post_init__(self):
        if self.block_size <= 0 or self.block_size % 4:
            raise ValueError("block size must be a positive multiple of 4")
        if self.ndirect < 0 or self.dirsiz <= 0:
            raise ValueError("ndirect and dirsiz must be positive")
        if self.block_size % self.dinode_size:
            raise ValueError("block size must be a multiple of the inode size")
        if self.block_size % self.dirent_size:
            raise ValueError("block size must be a multiple of the directory entry size")
        if self.nblocks <= 0:
            raise ValueError("file system too small for its metadata")

    @property
    def dinode_size(self):
        return 4 * 2 + 4 + 4 * (self.ndirect + 1)

    @property
    def dirent_size(self):
        return 2 + self.dirsiz

    @property
    def ipb(self):
        """Inodes per block."""
        return self.block_size // self.dinode_size

    @property
    def nindirect(self):
        return self.block_size // 4

    @property
    def maxfile(self):
        """Largest file, in blocks."""
        return self.ndirect + self.nindirect

    @property
    def nbitmap(self):
        return self.fs_size // (self.block_size * 8) + 1

    @property
    def ninodeblocks(self):
        return self.ninodes // self.ipb + 1

    @property
    def nmeta(self):
        """Blocks used by boot, super, log, inode and bitmap areas."""
        return 2 + self.nlog + self.ninodeblocks + self.nbitmap

    @property
    def nblocks(self):
        """Number of data blocks."""
        return self.fs_size - self.nmeta

    @property
    def logstart(self):
        return 2

    @property
    def inodestart(self):
        return 2 + self.nlog

    @property
    def bmapstart(self):
        return 2 + self.nlog + self.ninodeblocks

    def iblock(self, inum):
        """Block holding inode ``inum``."""
        return inum // self.ipb + self.inodestart

    def superblock(self):
        """The packed super block."""
        return _SUPERBLOCK.pack(
            self.magic,
            self.fs_size,
            self.nblocks,
            self.ninodes,
            self.nlog,
            self.logstart,
            self.inodestart,
            self.bmapstart,
        )


@dataclass
class DiskInode:
    """An inode as stored on disk."""

    type: int = 0
    major: int = 0
    minor: int = 0
    nlink: int = 0
    size: int = 0
    addrs: list = field(default_factory=list)

    def pack(self, layout):
        count = layout.ndirect + 1
        if len(self.addrs) > count:
            raise ValueError("too many block addresses")
        addrs = list(self.addrs) + [0] * (count - len(self.addrs))
        return struct.pack(
            f"{_DINODE_HEAD}{count}I",
            self.type,
            self.major,
            self.minor,
            self.nlink,
            self.size,
            *addrs,
        )

    @classmethod
    def unpack(cls, data, layout):
        count = layout.ndirect + 1
        fields = struct.unpack(f"{_DINODE_HEAD}{count}I", bytes(data[:layout.dinode_size]))
        return cls(*fields[:5], addrs=list(fields[5:]))


class ImageBuilder:
    """Writes a fresh file system with an empty root directory into ``image``.

    ``image`` is a seekable binary stream opened for reading and writing.
    """

    def __init__(self, image, layout=None):
        self.image = image
        self.layout = FsLayout() if layout is None else layout
        self.freeinode = 1
        self.freeblock = self.layout.nmeta
        bs = self.layout.block_size

        self.image.seek(0)
        self.image.write(bytes(bs * self.layout.fs_size))
        self.image.truncate()
        self._wsect(1, self.layout.superblock().ljust(bs, b"\0"))

        self.rootino = self.ialloc(T_DIR)
        if self.rootino != ROOTINO:
            raise ValueError("root inode has the wrong number")
        self.iappend(self.rootino, self._dirent(self.rootino, b"."))
        self.iappend(self.rootino, self._dirent(self.rootino, b".."))

    def _wsect(self, sec, data):
        bs = self.layout.block_size
        if len(data) != bs:
            raise ValueError("sector data must be exactly one block")
        self.image.seek(sec * bs)
        written = self.image.write(bytes(data))
        if written is not None and written != bs:
            raise OSError("write")

    def _rsect(self, sec):
        bs = self.layout.block_size
        self.image.seek(sec * bs)
        data = self.image.read(bs)
        if len(data) != bs:
            raise OSError("read")
        return data

    def _take_block(self):
        if self.freeblock >= self.layout.fs_size:
            raise ValueError("out of data blocks")
        block = self.freeblock
        self.freeblock += 1
        return block

    def _dirent(self, inum, name):
        if isinstance(name, str):
            name = name.encode()
        name = name[:self.layout.dirsiz]
        return xshort(inum) + name.ljust(self.layout.dirsiz, b"\0")

    def rinode(self, inum):
        """Read inode ``inum`` from the image."""
        block = self._rsect(self.layout.iblock(inum))
        off = (inum % self.layout.ipb) * self.layout.dinode_size
        return DiskInode.unpack(block[off:off + self.layout.dinode_size], self.layout)

    def winode(self, inum, din):
        """Write ``din`` as inode ``inum``."""
        bn = self.layout.iblock(inum)
        block = bytearray(self._rsect(bn))
        off = (inum % self.layout.ipb) * self.layout.dinode_size
        block[off:off + self.layout.dinode_size] = din.pack(self.layout)
        self._wsect(bn, block)

    def ialloc(self, type):
        """Allocate the next inode with the given type and one link; return its number."""
        if self.freeinode >= self.layout.ninodes:
            raise ValueError("out of inodes")
        inum = self.freeinode
        self.freeinode += 1
        self.winode(inum, DiskInode(type=type, nlink=1, size=0))
        return inum

    def iappend(self, inum, data):
        """Append ``data`` to the contents of inode ``inum``."""
        layout = self.layout
        bs = layout.block_size
        data = bytes(data)
        din = self.rinode(inum)
        off = din.size
        pos = 0
        indirect_fmt = f"<{layout.nindirect}I"
        while pos < len(data):
            fbn = off // bs
            if fbn >= layout.maxfile:
                raise ValueError("file too large")
            if fbn < layout.ndirect:
                if din.addrs[fbn] == 0:
                    din.addrs[fbn] = self._take_block()
                x = din.addrs[fbn]
            else:
                if din.addrs[layout.ndirect] == 0:
                    din.addrs[layout.ndirect] = self._take_block()
                ind_block = din.addrs[layout.ndirect]
                indirect = list(struct.unpack(indirect_fmt, self._rsect(ind_block)))
                k = fbn - layout.ndirect
                if indirect[k] == 0:
                    indirect[k] = self._take_block()
                    self._wsect(ind_block, struct.pack(indirect_fmt, *indirect))
                x = indirect[k]
            n1 = min(len(data) - pos, (fbn + 1) * bs - off)
            block = bytearray(self._rsect(x))
            start = off - fbn * bs
            block[start:start + n1] = data[pos:pos + n1]
            self._wsect(x, block)
            pos += n1
            off += n1
        din.size = off
        self.winode(inum, din)

    def add_file(self, name, data):
        """Create a file ``name`` in the root directory holding ``data``; return its inode."""
        if isinstance(name, str):
            name = name.encode()
        if b"/" in name:
            raise ValueError(f"file name {name!r} contains a slash")
        inum = self.ialloc(T_FILE)
        self.iappend(self.rootino, self._dirent(inum, name))
        self.iappend(inum, data)
        return inum

    def finish(self):
        """Round the root directory up and write the free bitmap; return the blocks in use."""
        bs = self.layout.block_size
        din = self.rinode(self.rootino)
        din.size = (din.size // bs + 1) * bs
        self.winode(self.rootino, din)

        used = self.freeblock
        if used >= bs * 8:
            raise ValueError("too many blocks in use for one bitmap block")
        bitmap = bytearray(bs)
        for i in range(used):
            bitmap[i // 8] |= 1 << (i % 8)
        self._wsect(self.layout.bmapstart, bitmap)
        return used


def _short_name(host):
    short = host[5:] if host.startswith("user/") else host
    if "/" in short:
        raise ValueError(f"{host}: file name must not contain a directory")
    return short


def build_image(path, files, layout=None):
    """Write an image at ``path`` holding ``files``; return the number of blocks in use.

    A leading ``user/`` and then a leading ``_`` are dropped from each name.
    """
    layout = FsLayout() if layout is None else layout
    with open(path, "w+b") as image:
        builder = ImageBuilder(image, layout)
        for host in files:
            host = os.fspath(host)
            short = _short_name(host)
            with open(host, "rb") as f:
                data = f.read()
            if short.startswith("_"):
                short = short[1:]
            builder.add_file(short, data)
        return builder.finish()


def main(argv=None):
    """Build the image named by the first argument from the remaining files."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        sys.stderr.write("Usage: mkfs fs.img files...\n")
        return 1
    layout = FsLayout()
    sys.stdout.write(
        "nmeta %d (boot, super, log blocks %d inode blocks %d, bitmap blocks %d) "
        "blocks %d total %d\n"
        % (
            layout.nmeta,
            layout.nlog,
            layout.ninodeblocks,
            layout.nbitmap,
            layout.nblocks,
            layout.fs_size,
        )
    )
    try:
        used = build_image(args[0], args[1:], layout)
    except OSError as exc:
        sys.stderr.write(f"{exc.filename or args[0]}: {exc.strerror or exc}\n")
        return 1
    except ValueError as exc:
        sys.stderr.write(f"mkfs: {exc}\n")
        return 1
    sys.stdout.write("balloc: first %d blocks have been allocated\n" % used)
    sys.stdout.write("balloc: write bitmap block at sector %d\n" % layout.bmapstart)
    sys.stdout.flush()
    return 0