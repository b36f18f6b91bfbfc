"""Lazy tokenizer for TCL scripts.

A script is split into commands (separated by newlines or `;`) and each
command into words. Words keep their raw text: braced words are never
substituted, while `[...]` command substitutions found in bare or quoted
words are lexed on the spot and attached to the word, so a consumer can
walk nested commands without lexing the same text twice.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

_BLANKS = " \t\r\f\v"
_WORD_BREAKS = " \t\r\f\v\n;"


class TokenKind(Enum):
    BARE = "bare"
    BRACED = "braced"
    QUOTED = "quoted"
    BRACKET = "bracket"
    COMMENT = "comment"
    END = "end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    line: int
    substitutions: Tuple[Tuple["Token", ...], ...] = ()

    @property
    def is_word(self) -> bool:
        return self.kind not in (TokenKind.COMMENT, TokenKind.END)


class TclSyntaxError(ValueError):
    def __init__(self, reason: str, line: int) -> None:
        super().__init__(f"line {line}: {reason}")
        self.reason = reason
        self.line = line


def match_brace(text: str, open_pos: int) -> int:
    """Index of the `}` closing the brace at `open_pos`, or -1."""
    depth = 0
    pos = open_pos
    end = len(text)
    while pos < end:
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return pos
        pos += 1
    return -1


class Lexer:
    def __init__(
        self,
        text: str,
        *,
        pos: int = 0,
        line: int = 1,
        terminator: Optional[str] = None,
    ) -> None:
        self.text = text
        self.pos = pos
        self.terminator = terminator
        self._start_line = line
        self._cursor = pos
        self._cursor_line = line

    def line_at(self, pos: int) -> int:
        if pos >= self._cursor:
            self._cursor_line += self.text.count("\n", self._cursor, pos)
            self._cursor = pos
            return self._cursor_line
        return self._cursor_line - self.text.count("\n", pos, self._cursor)

    def tokens(self) -> Iterator[Token]:
        text = self.text
        end = len(text)
        pending = False
        while True:
            self._skip_blanks()
            if self.pos >= end:
                if self.terminator is not None:
                    raise TclSyntaxError("unterminated bracket", self._start_line)
                if pending:
                    yield Token(TokenKind.END, "", self.line_at(end))
                return
            ch = text[self.pos]
            if self.terminator is not None and ch == self.terminator:
                line = self.line_at(self.pos)
                self.pos += 1
                if pending:
                    yield Token(TokenKind.END, "", line)
                return
            if ch == "\n" or ch == ";":
                line = self.line_at(self.pos)
                self.pos += 1
                if pending:
                    yield Token(TokenKind.END, ch, line)
                    pending = False
                continue
            if not pending and ch == "#":
                yield self._comment()
                continue
            yield self._word()
            pending = True

    def substitutions_in_text(self) -> List[Tuple[Token, ...]]:
        """Command substitutions of free text such as an `expr` argument."""
        text = self.text
        end = len(text)
        found: List[Tuple[Token, ...]] = []
        while self.pos < end:
            ch = text[self.pos]
            if ch == "\\":
                self.pos += 2
                continue
            if ch == "{":
                close = match_brace(text, self.pos)
                if close < 0:
                    raise TclSyntaxError("unterminated brace", self.line_at(self.pos))
                self.pos = close + 1
                continue
            if ch == "[":
                found.append(self._substitution())
                continue
            self.pos += 1
        return found

    def _skip_blanks(self) -> None:
        text = self.text
        end = len(text)
        while self.pos < end:
            ch = text[self.pos]
            if ch in _BLANKS:
                self.pos += 1
            elif ch == "\\" and text.startswith("\n", self.pos + 1):
                self.pos += 2
            else:
                break

    def _comment(self) -> Token:
        text = self.text
        end = len(text)
        start = self.pos
        line = self.line_at(start)
        while self.pos < end:
            ch = text[self.pos]
            if ch == "\\":
                self.pos += 2
                continue
            if ch == "\n":
                break
            self.pos += 1
        self.pos = min(self.pos, end)
        return Token(TokenKind.COMMENT, text[start : self.pos], line)

    def _word(self) -> Token:
        ch = self.text[self.pos]
        line = self.line_at(self.pos)
        if ch == "{":
            close = match_brace(self.text, self.pos)
            if close < 0:
                raise TclSyntaxError("unterminated brace", line)
            token = Token(TokenKind.BRACED, self.text[self.pos + 1 : close], line)
            self.pos = close + 1
            return token
        if ch == '"':
            return self._quoted(line)
        return self._bare(line)

    def _quoted(self, line: int) -> Token:
        text = self.text
        end = len(text)
        self.pos += 1
        start = self.pos
        subs: List[Tuple[Token, ...]] = []
        while self.pos < end:
            ch = text[self.pos]
            if ch == "\\":
                self.pos += 2
                continue
            if ch == '"':
                token = Token(TokenKind.QUOTED, text[start : self.pos], line, tuple(subs))
                self.pos += 1
                return token
            if ch == "[":
                subs.append(self._substitution())
                continue
            self.pos += 1
        raise TclSyntaxError("unterminated quote", line)

    def _bare(self, line: int) -> Token:
        text = self.text
        end = len(text)
        start = self.pos
        subs: List[Tuple[Token, ...]] = []
        first_sub_end = -1
        while self.pos < end:
            ch = text[self.pos]
            if ch in _WORD_BREAKS:
                break
            if self.terminator is not None and ch == self.terminator:
                break
            if ch == "\\":
                if text.startswith("\n", self.pos + 1):
                    break
                self.pos += 2
                continue
            if ch == "[":
                subs.append(self._substitution())
                if first_sub_end < 0:
                    first_sub_end = self.pos
                continue
            if ch == "$" and text.startswith("{", self.pos + 1):
                close = text.find("}", self.pos + 2)
                if close < 0:
                    raise TclSyntaxError("missing close-brace for variable name", line)
                self.pos = close + 1
                continue
            self.pos += 1
        self.pos = min(self.pos, end)
        raw = text[start : self.pos]
        if raw.startswith("[") and len(subs) == 1 and first_sub_end == self.pos:
            return Token(TokenKind.BRACKET, raw[1:-1], line, tuple(subs))
        return Token(TokenKind.BARE, raw, line, tuple(subs))

    def _substitution(self) -> Tuple[Token, ...]:
        nested = Lexer(
            self.text,
            pos=self.pos + 1,
            line=self.line_at(self.pos),
            terminator="]",
        )
        tokens = tuple(nested.tokens())
        self.pos = nested.pos
        return tokens


def tokenize(text: str, *, line: int = 1) -> Iterator[Token]:
    return Lexer(text, line=line).tokens()


def bracket_substitutions(text: str, *, line: int = 1) -> List[Tuple[Token, ...]]:
    return Lexer(text, line=line).substitutions_in_text()
