"""List files and directories."""

import enum
import os
import stat
import sys

from tinyunix import fmt

DIRSIZ = 14
_BUFSIZE = 512


class FileType(enum.IntEnum):
    """Kinds of file as reported by ls."""

    DIR = 1
    FILE = 2
    DEVICE = 3


def _file_type(mode):
    if stat.S_ISDIR(mode):
        return FileType.DIR
    if stat.S_ISREG(mode):
        return FileType.FILE
    return FileType.DEVICE


def fmtname(path):
    """Return the last path component, blank-padded to DIRSIZ unless longer."""
    name = path[path.rfind("/") + 1:]
    if len(name) >= DIRSIZ:
        return name
    return name.ljust(DIRSIZ)


def ls(path, out=None, err=None):
    """Print one line per file, or per directory entry, of ``path``."""
    out = sys.stdout if out is None else out
    err = sys.stderr if err is None else err
    try:
        st = os.stat(path)
    except OSError:
        fmt.fprintf(err, "ls: cannot open %s\n", path)
        return
    kind = _file_type(st.st_mode)
    if kind is FileType.FILE:
        fmt.fprintf(out, "%s %d %d %l\n", fmtname(path), kind.value, st.st_ino, st.st_size)
    elif kind is FileType.DIR:
        if len(path) + 1 + DIRSIZ + 1 > _BUFSIZE:
            fmt.fprintf(out, "ls: path too long\n")
            return
        try:
            names = sorted(os.listdir(path))
        except OSError:
            fmt.fprintf(err, "ls: cannot open %s\n", path)
            return
        for name in [".", "..", *names]:
            full = path + "/" + name
            try:
                est = os.stat(full)
            except OSError:
                fmt.fprintf(out, "ls: cannot stat %s\n", full)
                continue
            fmt.fprintf(
                out,
                "%s %d %d %d\n",
                fmtname(full),
                _file_type(est.st_mode).value,
                est.st_ino,
                est.st_size,
            )


def main(argv=None):
    """List each named path, or the current directory; return 0."""
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        ls(".")
        return 0
    for path in args:
        ls(path)
    return 0