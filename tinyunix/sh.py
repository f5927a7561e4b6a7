"""Parser for the shell's command language: words, < > >> redirections, | ; & and ( )."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, Union

MAXARGS = 10

_WHITESPACE = " \t\r\n\v"
_SYMBOLS = "<|>&;()"


class ShellSyntaxError(Exception):
    """Raised when a command line cannot be parsed."""

    def __init__(self, message, leftovers=None):
        super().__init__(message)
        self.leftovers = leftovers


class OpenMode(enum.Flag):
    """How a redirection opens its file."""

    RDONLY = 0
    WRONLY = 1
    RDWR = 2
    CREATE = 4


@dataclass
class ExecCmd:
    """Run a program with its arguments; an empty ``argv`` does nothing."""

    argv: list = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run ``cmd`` with descriptor ``fd`` replaced by ``file`` opened in ``mode``."""

    cmd: "Command"
    file: str
    mode: OpenMode
    fd: int


@dataclass
class PipeCmd:
    """Connect the output of ``left`` to the input of ``right``."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run ``left``, wait for it, then run ``right``."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run ``cmd`` without waiting for it."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


def _terminated(s):
    end = s.find("\0")
    return s if end < 0 else s[:end]


class _Scanner:
    def __init__(self, text):
        self.text = text
        self.pos = 0

    def _skip_space(self):
        while self.pos < len(self.text) and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def at_end(self):
        self._skip_space()
        return self.pos >= len(self.text)

    def peek(self, toks):
        self._skip_space()
        return self.pos < len(self.text) and self.text[self.pos] in toks

    def gettoken(self):
        """Return ``(kind, text)``; kind is '' at the end of input."""
        self._skip_space()
        text = self.text
        start = self.pos
        if start >= len(text):
            return "", ""
        c = text[start]
        if c in "|();&<":
            self.pos += 1
            kind = c
        elif c == ">":
            self.pos += 1
            if self.pos < len(text) and text[self.pos] == ">":
                self.pos += 1
                kind = "+"
            else:
                kind = ">"
        else:
            kind = "a"
            while (
                self.pos < len(text)
                and text[self.pos] not in _WHITESPACE
                and text[self.pos] not in _SYMBOLS
            ):
                self.pos += 1
        word = text[start:self.pos]
        self._skip_space()
        return kind, word

    def parseline(self):
        cmd = self.parsepipe()
        while self.peek("&"):
            self.gettoken()
            cmd = BackCmd(cmd)
        if self.peek(";"):
            self.gettoken()
            cmd = ListCmd(cmd, self.parseline())
        return cmd

    def parsepipe(self):
        cmd = self.parseexec()
        if self.peek("|"):
            self.gettoken()
            cmd = PipeCmd(cmd, self.parsepipe())
        return cmd

    def parseredirs(self, cmd):
        while self.peek("<>"):
            tok, _ = self.gettoken()
            kind, name = self.gettoken()
            if kind != "a":
                raise ShellSyntaxError("missing file for redirection")
            if tok == "<":
                cmd = RedirCmd(cmd, name, OpenMode.RDONLY, 0)
            else:
                cmd = RedirCmd(cmd, name, OpenMode.WRONLY | OpenMode.CREATE, 1)
        return cmd

    def parseblock(self):
        if not self.peek("("):
            raise ShellSyntaxError("parseblock")
        self.gettoken()
        cmd = self.parseline()
        if not self.peek(")"):
            raise ShellSyntaxError("syntax - missing )")
        self.gettoken()
        return self.parseredirs(cmd)

    def parseexec(self):
        if self.peek("("):
            return self.parseblock()
        exec_cmd = ExecCmd()
        ret = self.parseredirs(exec_cmd)
        while not self.peek("|)&;"):
            kind, word = self.gettoken()
            if kind == "":
                break
            if kind != "a":
                raise ShellSyntaxError("syntax")
            exec_cmd.argv.append(word)
            if len(exec_cmd.argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            ret = self.parseredirs(ret)
        return ret


def tokenize(s) -> Iterator[tuple]:
    """Yield ``(kind, text)`` tokens; kind is a symbol, '+' for '>>', or 'a' for a word."""
    scanner = _Scanner(_terminated(s))
    while True:
        kind, word = scanner.gettoken()
        if kind == "":
            return
        yield kind, word


def parsecmd(s) -> Command:
    """Parse a whole command line into a command tree."""
    scanner = _Scanner(_terminated(s))
    cmd = scanner.parseline()
    if not scanner.at_end():
        raise ShellSyntaxError("syntax", leftovers=scanner.text[scanner.pos:])
    return cmd