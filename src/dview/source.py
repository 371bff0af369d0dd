"""Lexical highlighting of whole source files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from pygments.lexers import get_lexer_by_name
from pygments.token import Comment, Error, Keyword, Literal, Number, String, Token
from pygments.util import ClassNotFound

from dview.attrs import AttributedLine, HLGroup

logger = logging.getLogger(__name__)


class Language(Enum):
    """Supported source languages; values are Pygments lexer aliases."""

    C = "c"
    CPP = "cpp"
    ADA = "ada"
    FORTRAN = "fortran"
    GO = "go"
    RUST = "rust"
    D = "d"
    ASM = "gas"
    PYTHON = "python"
    UNKNOWN = ""


_EXTENSIONS: dict[str, Language] = {
    ".c": Language.C,
    ".h": Language.C,
    ".cc": Language.CPP,
    ".cpp": Language.CPP,
    ".cxx": Language.CPP,
    ".hpp": Language.CPP,
    ".hh": Language.CPP,
    ".hxx": Language.CPP,
    ".C": Language.CPP,
    ".adb": Language.ADA,
    ".ads": Language.ADA,
    ".ada": Language.ADA,
    ".f": Language.FORTRAN,
    ".f90": Language.FORTRAN,
    ".f95": Language.FORTRAN,
    ".for": Language.FORTRAN,
    ".go": Language.GO,
    ".rs": Language.RUST,
    ".d": Language.D,
    ".di": Language.D,
    ".s": Language.ASM,
    ".S": Language.ASM,
    ".asm": Language.ASM,
    ".py": Language.PYTHON,
}


def language_for_path(path: str | Path) -> Language:
    suffix = Path(path).suffix
    lang = _EXTENSIONS.get(suffix)
    if lang is None:
        lang = _EXTENSIONS.get(suffix.lower(), Language.UNKNOWN)
    return lang


class TokenKind(Enum):
    KEYWORD = auto()
    TYPE = auto()
    LITERAL = auto()
    NUMBER = auto()
    COMMENT = auto()
    DIRECTIVE = auto()
    TEXT = auto()
    ERROR = auto()


class TokenizeError(RuntimeError):
    """The tokenizer could not produce a faithful token stream for a file."""


def token_kind(ttype) -> TokenKind:
    """Map a Pygments token type onto the closed set of token kinds."""
    if ttype not in Token:
        raise TokenizeError(f"unknown token type {ttype!r}")
    if ttype in Comment.Preproc or ttype in Comment.PreprocFile:
        return TokenKind.DIRECTIVE
    if ttype in Comment:
        return TokenKind.COMMENT
    if ttype in Keyword.Type:
        return TokenKind.TYPE
    if ttype in Keyword:
        return TokenKind.KEYWORD
    if ttype in Number:
        return TokenKind.NUMBER
    if ttype in String or ttype in Literal:
        return TokenKind.LITERAL
    if ttype in Error:
        return TokenKind.ERROR
    return TokenKind.TEXT


_GROUP_FOR_KIND = {
    TokenKind.KEYWORD: HLGroup.KEYWORD,
    TokenKind.TYPE: HLGroup.TYPE,
    TokenKind.LITERAL: HLGroup.LITERAL,
    TokenKind.COMMENT: HLGroup.COMMENT,
    TokenKind.DIRECTIVE: HLGroup.DIRECTIVE,
    # numbers stay uncoloured
    TokenKind.NUMBER: HLGroup.TEXT,
    TokenKind.TEXT: HLGroup.TEXT,
    TokenKind.ERROR: HLGroup.TEXT,
}


def group_for_kind(kind: TokenKind) -> HLGroup:
    try:
        return _GROUP_FOR_KIND[kind]
    except KeyError:
        raise TokenizeError(f"token kind {kind.name} has no highlight group") from None


def split_lines(text: str) -> list[str]:
    """Split file contents the way the tokenizer sees them."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def classify_source(text: str, language: Language) -> list[AttributedLine]:
    """Tokenize *text* and return one attributed line per source line."""
    try:
        lexer = get_lexer_by_name(
            language.value, stripnl=False, stripall=False, ensurenl=False
        )
    except ClassNotFound as exc:
        raise TokenizeError(f"no tokenizer for {language.name}") from exc

    lines: list[AttributedLine] = []
    runs: list[tuple[str, HLGroup]] = [("", HLGroup.TEXT)]

    for ttype, value in lexer.get_tokens(text):
        kind = token_kind(ttype)
        group = group_for_kind(kind)
        for n, piece in enumerate(value.split("\n")):
            if n:
                # close the line, reopen in plain text
                lines.append(AttributedLine.from_runs(runs))
                runs = [("", HLGroup.TEXT)]
            if not piece:
                continue
            if group is HLGroup.TEXT:
                last, last_group = runs[-1]
                if last_group is HLGroup.TEXT:
                    runs[-1] = (last + piece, HLGroup.TEXT)
                else:
                    runs.append((piece, HLGroup.TEXT))
            else:
                runs.append((piece, group))
                runs.append(("", HLGroup.TEXT))

    if any(run for run, _group in runs):
        lines.append(AttributedLine.from_runs(runs))
    return lines


@dataclass
class SourceFile:
    path: Path
    language: Language
    orig_lines: list[str] = field(default_factory=list)
    lines: list[AttributedLine] = field(default_factory=list)
    max_width: int = 0


class SourceHighlighter:
    """Highlights source files and caches the result per file."""

    def __init__(self) -> None:
        self._cache: dict[Path, tuple[float, SourceFile]] = {}

    def highlight(
        self, path: str | Path, text: str, language: Language | None = None
    ) -> SourceFile:
        """Highlight *text* without touching the cache or the filesystem."""
        path = Path(path)
        if language is None:
            language = language_for_path(path)
        orig = split_lines(text)

        if language is Language.UNKNOWN:
            logger.debug("no highlighting for %s, copying lines verbatim", path)
            lines = [AttributedLine.plain(line) for line in orig]
        else:
            try:
                lines = classify_source(text, language)
                if [line.text for line in lines] != orig:
                    raise TokenizeError("token stream does not reproduce the file")
            except TokenizeError as exc:
                logger.warning("highlighting %s failed: %s", path, exc)
                lines = [AttributedLine.plain(line) for line in orig]

        return SourceFile(
            path=path,
            language=language,
            orig_lines=orig,
            lines=lines,
            max_width=max((len(line) for line in orig), default=0),
        )

    def load(self, path: str | Path, language: Language | None = None) -> SourceFile:
        """Read and highlight *path*, reusing the cached result while unchanged.

        OSError from reading the file propagates to the caller.
        """
        resolved = Path(path).resolve()
        mtime = resolved.stat().st_mtime
        cached = self._cache.get(resolved)
        if cached is not None and cached[0] == mtime:
            if language is None or cached[1].language is language:
                logger.debug("source cache hit: %s", resolved)
                return cached[1]

        logger.debug("source cache miss: %s", resolved)
        text = resolved.read_text(encoding="utf-8-sig", errors="replace")
        source = self.highlight(resolved, text, language)
        self._cache[resolved] = (mtime, source)
        return source

    def forget(self, path: str | Path) -> None:
        self._cache.pop(Path(path).resolve(), None)

    def clear(self) -> None:
        self._cache.clear()
