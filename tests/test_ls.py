import io
import os

from tinyunix.ls import DIRSIZ, FileType, fmtname, ls, main


def test_fmtname_pads_last_component():
    name = fmtname("a/b/cat")
    assert len(name) == DIRSIZ
    assert name.rstrip() == "cat"


def test_fmtname_long_name_unchanged():
    long_name = "x" * (DIRSIZ + 3)
    assert fmtname("dir/" + long_name) == long_name


def test_fmtname_without_slash():
    assert fmtname("hello").rstrip() == "hello"


def test_ls_file(tmp_path):
    p = tmp_path / "data"
    p.write_bytes(b"hello")
    out, err = io.StringIO(), io.StringIO()
    ls(str(p), out, err)
    fields = out.getvalue().split()
    assert err.getvalue() == ""
    assert fields[0] == "data"
    assert fields[1] == str(FileType.FILE.value)
    assert fields[3] == str(len(b"hello"))
    assert out.getvalue().startswith(fmtname(str(p)) + " ")


def test_ls_directory(tmp_path):
    (tmp_path / "b").write_bytes(b"")
    (tmp_path / "a").mkdir()
    out = io.StringIO()
    ls(str(tmp_path), out, io.StringIO())
    rows = [line.split() for line in out.getvalue().splitlines()]
    names = [row[0] for row in rows]
    assert names == [".", "..", "a", "b"]
    types = {row[0]: int(row[1]) for row in rows}
    assert types["."] == FileType.DIR
    assert types["a"] == FileType.DIR
    assert types["b"] == FileType.FILE


def test_ls_missing(tmp_path):
    missing = str(tmp_path / "nope")
    out, err = io.StringIO(), io.StringIO()
    ls(missing, out, err)
    assert err.getvalue() == f"ls: cannot open {missing}\n"
    assert out.getvalue() == ""


def test_ls_path_too_long(tmp_path):
    path = str(tmp_path) + "/." * 300
    assert os.path.isdir(path)
    out = io.StringIO()
    ls(path, out, io.StringIO())
    assert out.getvalue() == "ls: path too long\n"


def test_main_lists_arguments(tmp_path, capsys):
    p = tmp_path / "f"
    p.write_bytes(b"abc")
    assert main([str(p)]) == 0
    assert capsys.readouterr().out.split()[0] == "f"