r"""Path pattern compiler.

Turns Express-style path strings into anchored regular expressions plus
the ordered parameter keys their capture groups correspond to.

Syntax::

    /users/:id            named parameter, one segment
    /users/:id(\d+)       named parameter with a custom pattern
    /assets/(.*)          unnamed parameter, keyed by position (0, 1, ...)
    /posts/:slug?         optional
    /docs/:page*          zero or more segments
    /files/:path+         one or more segments
    /price\:usd           backslash makes the next character literal

Patterns compile once, at registration. Malformed patterns raise
``PatternError`` there rather than at request time.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeAlias
from urllib.parse import unquote

from tini._internal.types import ParamKey
from tini.errors import PatternError

DEFAULT_DELIMITER = "/"
DEFAULT_DELIMITERS = "./"

_MODIFIERS = frozenset("?*+")
_NAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")
# Escaped when they appear unescaped inside a custom parameter pattern
_PATTERN_ESCAPES = frozenset("=!:$/()")


@dataclass(frozen=True, slots=True)
class Param:
    """A parameter token.

    ``prefix`` is the delimiter the parameter took over from the literal
    just before it, or ``""``. ``partial`` marks a parameter whose prefix
    does not open a clean segment; its prefix stays required even when
    the parameter itself is optional.
    """

    name: ParamKey
    prefix: str = ""
    delimiter: str = DEFAULT_DELIMITER
    optional: bool = False
    repeat: bool = False
    partial: bool = False
    pattern: str = ""


Token: TypeAlias = str | Param


@dataclass(frozen=True, slots=True)
class PathMatch:
    """Result of matching a concrete path against a compiled pattern."""

    path: str
    params: dict[ParamKey, str]


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A compiled pattern: regex plus parameter keys in capture-group order.

    ``keys[i]`` always describes capture group ``i + 1`` of ``regex``.
    """

    source: str
    regex: re.Pattern[str]
    keys: tuple[Param, ...]

    def match(self, path: str) -> PathMatch | None:
        """Match *path*, returning decoded parameters or ``None``.

        Parameters whose group did not take part in the match (an
        optional segment that was left out) are absent from ``params``.
        """
        m = self.regex.match(path)
        if m is None:
            return None
        params: dict[ParamKey, str] = {}
        for key, value in zip(self.keys, m.groups(), strict=True):
            if value is not None:
                params[key.name] = unquote(value)
        return PathMatch(path=m.group(0), params=params)


# -- Scanning --


def _read_group(pattern: str, start: int) -> tuple[str, int]:
    """Read a ``(...)`` group opening at *start*; return (body, end index)."""
    parts: list[str] = []
    i = start + 1
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            if i + 1 == len(pattern):
                break
            parts.append(pattern[i : i + 2])
            i += 2
        elif char == ")":
            if not parts:
                raise PatternError(pattern, f"empty group at position {start}")
            return "".join(parts), i + 1
        elif char == "(":
            raise PatternError(pattern, f"nested group at position {i} is not supported")
        else:
            parts.append(char)
            i += 1
    raise PatternError(pattern, f"unbalanced '(' at position {start}")


def _escape_group(body: str) -> str:
    """Escape the reserved characters of a custom parameter pattern."""
    out: list[str] = []
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\":
            out.append(body[i : i + 2])
            i += 2
            continue
        out.append("\\" + char if char in _PATTERN_ESCAPES else char)
        i += 1
    return "".join(out)


def parse(
    pattern: str,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    delimiters: str = DEFAULT_DELIMITERS,
) -> list[Token]:
    """Scan *pattern* into literal strings and ``Param`` tokens.

    Examples::

        parse("/users/:id")  -> ["/users", Param("id", prefix="/", pattern="[^/]+?")]
        parse("(.*)")        -> [Param(0, pattern=".*")]
    """
    tokens: list[Token] = []
    key = 0
    literal = ""
    literal_escaped = False
    # Where scanning resumed after the previous escape or parameter
    run_start = 0
    i = 0

    while i < len(pattern):
        char = pattern[i]
        start = i

        if char == "\\":
            if i + 1 == len(pattern):
                raise PatternError(pattern, "dangling escape at end of pattern")
            literal += pattern[i + 1]
            literal_escaped = True
            i += 2
            run_start = i
            continue

        name: str | None = None
        group: str | None = None
        if char == ":" and i + 1 < len(pattern) and pattern[i + 1] in _NAME_CHARS:
            i += 1
            while i < len(pattern) and pattern[i] in _NAME_CHARS:
                i += 1
            name = pattern[start + 1 : i]
            if i < len(pattern) and pattern[i] == "(":
                group, i = _read_group(pattern, i)
        elif char == "(":
            group, i = _read_group(pattern, i)
        elif char == ")":
            raise PatternError(pattern, f"unbalanced ')' at position {i}")
        else:
            literal += char
            i += 1
            continue

        modifier = ""
        if i < len(pattern) and pattern[i] in _MODIFIERS:
            modifier = pattern[i]
            i += 1

        # A delimiter closing the literal belongs to the parameter
        prefix = ""
        if not literal_escaped and literal and literal[-1] in delimiters:
            prefix = literal[-1]
            literal = literal[:-1]

        if literal:
            tokens.append(literal)
            literal = ""
            literal_escaped = False

        run_char = pattern[run_start]
        param_delimiter = prefix or delimiter
        if group is not None:
            param_pattern = _escape_group(group)
        else:
            param_pattern = f"[^{re.escape(param_delimiter)}]+?"

        if name is None:
            param_name: ParamKey = key
            key += 1
        else:
            param_name = name

        tokens.append(
            Param(
                name=param_name,
                prefix=prefix,
                delimiter=param_delimiter,
                optional=modifier in ("?", "*"),
                repeat=modifier in ("+", "*"),
                partial=prefix != "" and run_char != prefix,
                pattern=param_pattern,
            )
        )
        run_start = i

    if literal:
        tokens.append(literal)

    return tokens


# -- Regex generation --


def tokens_to_regex(
    tokens: Sequence[Token],
    *,
    end: bool = True,
    strict: bool = False,
    sensitive: bool = False,
    delimiter: str = DEFAULT_DELIMITER,
    delimiters: str = DEFAULT_DELIMITERS,
    ends_with: Sequence[str] = (),
) -> re.Pattern[str]:
    """Build an anchored regex from parsed tokens.

    With ``end=True`` the whole path must match (an optional trailing
    delimiter is allowed unless ``strict``). With ``end=False`` the
    pattern matches a prefix that stops at a delimiter boundary.

    Raises ``re.error`` if a custom parameter pattern is not valid.
    """
    delim = re.escape(delimiter)
    ends = "|".join([*(re.escape(s) for s in ends_with), r"\Z"])
    route = "^"
    is_end_delimited = not tokens

    for index, token in enumerate(tokens):
        match token:
            case str():
                route += re.escape(token)
                is_end_delimited = index == len(tokens) - 1 and token[-1] in delimiters
            case Param(prefix=prefix, pattern=pattern):
                capture = pattern
                if token.repeat:
                    sep = re.escape(token.delimiter)
                    capture = f"(?:{pattern})(?:{sep}(?:{pattern}))*"
                prefix = re.escape(prefix)
                if not token.optional:
                    route += f"{prefix}({capture})"
                elif token.partial:
                    route += f"{prefix}({capture})?"
                else:
                    route += f"(?:{prefix}({capture}))?"

    if end:
        if not strict:
            route += f"(?:{delim})?"
        route += f"(?={ends})" if ends_with else r"\Z"
    else:
        if not strict:
            route += f"(?:{delim}(?={ends}))?"
        if not is_end_delimited:
            route += f"(?={delim}|{ends})"

    return re.compile(route, 0 if sensitive else re.IGNORECASE)


def _regex_keys(regex: re.Pattern[str]) -> tuple[Param, ...]:
    """Describe the capture groups of a precompiled regex as parameters."""
    names = {index: name for name, index in regex.groupindex.items()}
    return tuple(
        Param(name=names.get(group, group - 1), prefix="", delimiter="", pattern="")
        for group in range(1, regex.groups + 1)
    )


def compile_pattern(
    pattern: str | re.Pattern[str],
    *,
    end: bool = True,
    strict: bool = False,
    sensitive: bool = False,
    delimiter: str = DEFAULT_DELIMITER,
    delimiters: str = DEFAULT_DELIMITERS,
    ends_with: Sequence[str] = (),
) -> CompiledPattern:
    """Compile a path pattern into a ``CompiledPattern``.

    A precompiled ``re.Pattern`` is used as-is; each of its capture
    groups becomes a parameter keyed by group name, or by position
    when unnamed.

    Raises ``PatternError`` if the pattern cannot be compiled.
    """
    if isinstance(pattern, re.Pattern):
        return CompiledPattern(source=pattern.pattern, regex=pattern, keys=_regex_keys(pattern))

    tokens = parse(pattern, delimiter=delimiter, delimiters=delimiters)
    try:
        regex = tokens_to_regex(
            tokens,
            end=end,
            strict=strict,
            sensitive=sensitive,
            delimiter=delimiter,
            delimiters=delimiters,
            ends_with=ends_with,
        )
    except re.error as exc:
        raise PatternError(pattern, str(exc)) from exc

    keys = tuple(token for token in tokens if isinstance(token, Param))
    return CompiledPattern(source=pattern, regex=regex, keys=keys)
