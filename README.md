# tinyunix

A small teaching Unix, written in plain Python with no third-party
dependencies. It has three parts:

- **User tools**: `cat`, `echo`, `grep`, `wc`, `ls`, `ln`, `rm` and `mkdir`,
  a `printf` that knows only a handful of conversions, a first-fit memory
  allocator, and a parser for the shell's command language.
- **Kernel pieces, as models**: Sv39 three-level page tables over a simulated
  physical memory, and a virtio block-device descriptor queue that runs
  against an in-memory disk image.
- **Tooling**: `mkfs`, which builds a file-system image from a list of host
  files, and a matrix-multiplication workload.

## Installing

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Commands

The tools work on the host's own files.

| Command | What it does |
| --- | --- |
| `tinyunix-cat [file ...]` | copy files, or standard input, to standard output |
| `tinyunix-echo [word ...]` | print the words separated by spaces |
| `tinyunix-grep pattern [file ...]` | print complete lines matching a pattern made of `^ . * $` and literal characters |
| `tinyunix-wc [file ...]` | print line, word and byte counts |
| `tinyunix-ls [path ...]` | list a file, or a directory's `.`, `..` and entries in sorted order |
| `tinyunix-ln old new` | make a hard link |
| `tinyunix-rm file ...` | remove files or empty directories, stopping at the first failure |
| `tinyunix-mkdir dir ...` | make directories, stopping at the first failure |
| `tinyunix-mkfs fs.img file ...` | build a file-system image holding the given files |
| `tinyunix-matrix [size [rounds]]` | multiply matrices repeatedly (100x100, 300 rounds by default) |

For example:

```
tinyunix-grep '^ab*c$' notes.txt
tinyunix-mkfs fs.img README _cat _echo _ls
```

`tinyunix-grep` does not print a last line that has no newline.
`tinyunix-mkfs` puts every file in the root directory; a leading `user/` is
taken off each name, then one leading `_`, so `_cat` becomes `cat`. A name
that still contains a `/` is refused.

## Using it from Python

### Formatting

`tinyunix.fmt.format(fmt, *args)` knows `%d` (signed 32-bit), `%l` and `%x`
(unsigned 32-bit), `%p` (64-bit, `0x` and 16 digits), `%s` (`None` prints
`(null)`), `%c` and `%%`. Hexadecimal digits are upper case, and an unknown
conversion is printed as is. `fprintf(stream, ...)` and `printf(...)` write
the result.

```python
from tinyunix.fmt import format

format("%d items, mask %x\n", 3, 255)   # '3 items, mask FF\n'
```

`tinyunix.ulib` has `atoi`, `strcmp` and `gets(stream, max)`.

### Pattern matching

```python
from tinyunix.grep import match

match("^ab*c$", "abbbc")   # True
match("x.z", "wxyz")       # True
```

`tinyunix.wc.count(stream)` returns a `Counts` with `lines`, `words` and
`chars` for a binary stream.

### Shell parsing

`tinyunix.sh.parsecmd` turns a command line into a tree of `ExecCmd`,
`RedirCmd`, `PipeCmd`, `ListCmd` and `BackCmd` nodes, and `tokenize` yields
its tokens. Both `>` and `>>` become a `RedirCmd` opened
`OpenMode.WRONLY | OpenMode.CREATE` on descriptor 1. Input it cannot parse,
or a command with ten or more words, raises `ShellSyntaxError`.

```python
from tinyunix.sh import parsecmd

tree = parsecmd("cat < in | grep foo > out; echo done &")
```

### Memory allocation

`tinyunix.umalloc.Allocator(limit, unit)` hands out addresses in a simulated
heap of at most `limit` bytes. `malloc` returns `None` when the heap is
exhausted, `free` merges neighbouring free blocks and raises `ValueError` for
an address it did not hand out, and `free_blocks()` lists the free list.

### Page tables

`tinyunix.vm.PhysicalMemory` and `tinyunix.vm.PageTable` model the Sv39
scheme: `walk`, `walkaddr`, `mappages`, `unmap`, `init_code`, `grow`,
`shrink`, `free`, `copy_to`, `clear_user`, `copyout`, `copyin` and
`copyinstr`. An inconsistency such as remapping a page raises `VMError`;
running out of pages raises `MemoryError`; touching an unmapped user address
raises `ValueError`.

### Virtio disk

`tinyunix.virtio.VirtioDisk` drives a `BlockDevice` through the legacy
three-descriptor virtio-blk request: a header, the data block, and a one-byte
status. `VirtioDisk.rw(buf, write)` reads or writes a `Buf`; the device
completes requests as soon as it is notified. Device or driver errors raise
`VirtioError`.

### Building images

`tinyunix.mkfs.build_image(path, files, layout)` writes a complete image and
returns the number of blocks in use. `ImageBuilder` works on any seekable
binary stream: `ialloc`, `iappend`, `rinode`, `winode`, `add_file`, then
`finish`. `FsLayout` holds the sizes that fix the disk layout.

## What it does not do

There is no kernel to run: no processes, scheduler, system calls or file
system that reads the images `mkfs` writes. The shell module parses command
lines but does not run them, and there is no interactive shell command.