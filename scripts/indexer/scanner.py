from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import OPAQUE_COMMANDS, RESERVED_COMMANDS
from .lexer import Token, TokenKind, bracket_substitutions, tokenize

_SWITCH_VALUE_OPTIONS = {"-matchvar", "-indexvar"}
_DICT_SCRIPT_SUBCOMMANDS = {"for", "map", "with", "update"}
_AFTER_NON_SCRIPT_SUBCOMMANDS = {"cancel", "info"}


def file_scope_name(path: str) -> str:
    return f"<file:{path}>"


@dataclass
class ScanResult:
    path: str
    declared: List[str] = field(default_factory=list)
    edges: List[Tuple[str, str]] = field(default_factory=list)


def command_name(token: Token) -> Optional[str]:
    """Literal command name of a word, or None when it is computed at runtime."""
    if token.kind is not TokenKind.BARE:
        return None
    text = token.text
    if not text or "$" in text or "[" in text or "\\" in text:
        return None
    return text


def procedure_name(token: Token) -> Optional[str]:
    if token.kind is TokenKind.BARE:
        return command_name(token)
    if token.kind is TokenKind.BRACED and token.text:
        return token.text
    if token.kind is TokenKind.QUOTED and token.text and not token.substitutions:
        if "$" in token.text or "\\" in token.text:
            return None
        return token.text
    return None


class ProcedureScanner:
    """Walks commands, recording `proc` declarations and call edges in source order."""

    def __init__(self, result: ScanResult) -> None:
        self.result = result
        self._builtins: Dict[str, Callable[[Sequence[Token], str], None]] = {
            "if": self._scan_if,
            "while": self._scan_while,
            "for": self._scan_for,
            "foreach": self._scan_foreach,
            "lmap": self._scan_foreach,
            "switch": self._scan_switch,
            "catch": self._scan_leading_script,
            "time": self._scan_leading_script,
            "try": self._scan_try,
            "namespace": self._scan_namespace,
            "uplevel": self._scan_uplevel,
            "expr": self._scan_expr,
            "dict": self._scan_dict,
            "after": self._scan_after,
        }

    def scan_script(self, tokens: Iterable[Token], scope: str) -> None:
        words: List[Token] = []
        for token in tokens:
            if token.kind is TokenKind.COMMENT:
                continue
            if token.kind is TokenKind.END:
                if words:
                    self._command(words, scope)
                    words = []
                continue
            words.append(token)
        if words:
            self._command(words, scope)

    def _command(self, words: Sequence[Token], scope: str) -> None:
        name = command_name(words[0])
        if name is None:
            self._scan_substitutions(words, scope)
            return
        if name == "proc":
            self._scan_proc(words, scope)
            return
        if name in OPAQUE_COMMANDS:
            return
        if name in RESERVED_COMMANDS:
            handler = self._builtins.get(name)
            if handler is not None:
                handler(words[1:], scope)
            else:
                self._scan_substitutions(words[1:], scope)
            return
        self.result.edges.append((scope, name))
        self._scan_substitutions(words[1:], scope)

    def _scan_proc(self, words: Sequence[Token], scope: str) -> None:
        if len(words) != 4:
            self._scan_substitutions(words[1:], scope)
            return
        name_token, _, body = words[1], words[2], words[3]
        name = procedure_name(name_token)
        if name is None:
            self._scan_substitutions([name_token], scope)
            return
        self.result.declared.append(name)
        self._scan_body(body, name)

    def _scan_body(self, token: Token, scope: str) -> None:
        if token.kind in (TokenKind.BRACED, TokenKind.QUOTED) and not token.substitutions:
            self.scan_script(tokenize(token.text, line=token.line), scope)
        else:
            self._scan_substitutions([token], scope)

    def _scan_expression(self, token: Token, scope: str) -> None:
        if token.kind is TokenKind.BRACED:
            for nested in bracket_substitutions(token.text, line=token.line):
                self.scan_script(nested, scope)
        else:
            self._scan_substitutions([token], scope)

    def _scan_substitutions(self, words: Iterable[Token], scope: str) -> None:
        for word in words:
            for nested in word.substitutions:
                self.scan_script(nested, scope)

    def _scan_if(self, args: Sequence[Token], scope: str) -> None:
        i = 0
        expect_condition = True
        while i < len(args):
            if expect_condition:
                self._scan_expression(args[i], scope)
                i += 1
                if i < len(args) and _is_keyword(args[i], "then"):
                    i += 1
                if i < len(args):
                    self._scan_body(args[i], scope)
                    i += 1
                expect_condition = False
                continue
            if _is_keyword(args[i], "elseif"):
                expect_condition = True
                i += 1
                continue
            if _is_keyword(args[i], "else"):
                i += 1
            if i < len(args):
                self._scan_body(args[i], scope)
            return

    def _scan_while(self, args: Sequence[Token], scope: str) -> None:
        if len(args) != 2:
            self._scan_substitutions(args, scope)
            return
        self._scan_expression(args[0], scope)
        self._scan_body(args[1], scope)

    def _scan_for(self, args: Sequence[Token], scope: str) -> None:
        if len(args) != 4:
            self._scan_substitutions(args, scope)
            return
        start, test, step, body = args
        self._scan_body(start, scope)
        self._scan_expression(test, scope)
        self._scan_body(step, scope)
        self._scan_body(body, scope)

    def _scan_foreach(self, args: Sequence[Token], scope: str) -> None:
        if len(args) < 3:
            self._scan_substitutions(args, scope)
            return
        self._scan_substitutions(args[:-1], scope)
        self._scan_body(args[-1], scope)

    def _scan_leading_script(self, args: Sequence[Token], scope: str) -> None:
        if not args:
            return
        self._scan_body(args[0], scope)
        self._scan_substitutions(args[1:], scope)

    def _scan_expr(self, args: Sequence[Token], scope: str) -> None:
        for arg in args:
            self._scan_expression(arg, scope)

    def _scan_switch(self, args: Sequence[Token], scope: str) -> None:
        i = 0
        while i < len(args) and args[i].kind is TokenKind.BARE and args[i].text.startswith("-"):
            option = args[i].text
            i += 1
            if option == "--":
                break
            if option in _SWITCH_VALUE_OPTIONS:
                i += 1
        self._scan_substitutions(args[:i], scope)
        if i >= len(args):
            return
        self._scan_substitutions([args[i]], scope)
        clauses = list(args[i + 1 :])
        if len(clauses) == 1 and clauses[0].kind is TokenKind.BRACED:
            listed = [tok for tok in tokenize(clauses[0].text, line=clauses[0].line) if tok.is_word]
            for pattern, body in _pairs(listed):
                if not _is_keyword(body, "-"):
                    self._scan_body(body, scope)
            return
        for pattern, body in _pairs(clauses):
            self._scan_substitutions([pattern], scope)
            if not _is_keyword(body, "-"):
                self._scan_body(body, scope)

    def _scan_try(self, args: Sequence[Token], scope: str) -> None:
        if not args:
            return
        self._scan_body(args[0], scope)
        i = 1
        while i < len(args):
            word = args[i]
            if _is_keyword(word, "on") or _is_keyword(word, "trap"):
                self._scan_substitutions(args[i + 1 : i + 3], scope)
                if i + 3 < len(args):
                    self._scan_body(args[i + 3], scope)
                i += 4
                continue
            if _is_keyword(word, "finally"):
                if i + 1 < len(args):
                    self._scan_body(args[i + 1], scope)
                i += 2
                continue
            self._scan_substitutions([word], scope)
            i += 1

    def _scan_namespace(self, args: Sequence[Token], scope: str) -> None:
        if len(args) == 3 and _is_keyword(args[0], "eval"):
            self._scan_substitutions([args[1]], scope)
            self._scan_body(args[2], scope)
            return
        self._scan_substitutions(args, scope)

    def _scan_dict(self, args: Sequence[Token], scope: str) -> None:
        if len(args) >= 3 and args[0].kind is TokenKind.BARE and args[0].text in _DICT_SCRIPT_SUBCOMMANDS:
            self._scan_substitutions(args[1:-1], scope)
            self._scan_body(args[-1], scope)
            return
        self._scan_substitutions(args, scope)

    def _scan_after(self, args: Sequence[Token], scope: str) -> None:
        if len(args) < 2 or (args[0].kind is TokenKind.BARE and args[0].text in _AFTER_NON_SCRIPT_SUBCOMMANDS):
            self._scan_substitutions(args, scope)
            return
        # after ms|idle script...
        self._scan_substitutions(args[:1], scope)
        if len(args) == 2:
            self._scan_body(args[1], scope)
        else:
            self._scan_substitutions(args[1:], scope)

    def _scan_uplevel(self, args: Sequence[Token], scope: str) -> None:
        rest = list(args)
        if len(rest) > 1 and _is_level(rest[0]):
            self._scan_substitutions(rest[:1], scope)
            rest = rest[1:]
        if len(rest) == 1:
            self._scan_body(rest[0], scope)
        else:
            self._scan_substitutions(rest, scope)


def _is_keyword(token: Token, keyword: str) -> bool:
    return token.kind is TokenKind.BARE and token.text == keyword


def _is_level(token: Token) -> bool:
    if token.kind is not TokenKind.BARE:
        return False
    text = token.text[1:] if token.text.startswith("#") else token.text
    return text.isdigit()


def _pairs(tokens: Sequence[Token]) -> List[Tuple[Token, Token]]:
    return [(tokens[i], tokens[i + 1]) for i in range(0, len(tokens) - 1, 2)]


def scan_source(text: str, path: str = "<string>") -> ScanResult:
    """Scan one file's TCL source. Raises TclSyntaxError on unbalanced quoting."""
    result = ScanResult(path=path)
    source = text.replace("\r\n", "\n")
    ProcedureScanner(result).scan_script(tokenize(source), file_scope_name(path))
    return result
