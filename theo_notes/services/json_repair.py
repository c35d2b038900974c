"""
Best-effort closing of a truncated JSON document.

Precondition: the input is a *prefix* of a valid JSON object or array, i.e.
the producer was cut off mid-token or mid-structure. Arbitrary corruption is
not handled here; such text simply fails to parse downstream.
"""
from __future__ import annotations

import re

_TRAILING_COMMA_RE = re.compile(r",\s*$")
_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_LITERALS = frozenset({"true", "false", "null"})

_CLOSERS = {"{": "}", "[": "]"}

# Where the scanner is inside the innermost open container
_KEY = "key"                  # object: expecting a key (or `}`)
_COLON = "colon"              # object: key read, expecting `:`
_VALUE = "value"              # expecting a value
_AFTER_VALUE = "after_value"  # value read, expecting `,` or a closer


class _Frame:
    __slots__ = ("opener", "state", "member_start")

    def __init__(self, opener: str) -> None:
        self.opener = opener
        self.state = _KEY if opener == "{" else _VALUE
        # index of the opening quote of the current object member's key
        self.member_start = -1

    @property
    def closer(self) -> str:
        return _CLOSERS[self.opener]

    @property
    def is_object(self) -> bool:
        return self.opener == "{"


def _value_done(stack: list[_Frame]) -> None:
    if stack:
        stack[-1].state = _AFTER_VALUE


def repair(text: str) -> str | None:
    """
    Return `text` closed into something `json.loads` accepts, or None when
    there is nothing to repair.

    Open strings get one synthetic closing quote, dangling escapes are dropped,
    members that never received a complete value are cut back (a half-typed
    key, `"key":` with nothing after it, a partial literal like `tru` or `1.`),
    trailing commas are stripped and the remaining brackets are closed
    innermost first.
    """
    if not text or not text.strip():
        return None

    s = text.strip()
    stack: list[_Frame] = []

    in_string = False
    string_start = -1
    string_is_key = False
    escape_at = -1       # index of a pending backslash escape
    escape_left = 0      # chars still owed to that escape (`\uXXXX` owes 5)
    token_start = -1     # start of a bare literal/number

    def end_token() -> None:
        nonlocal token_start
        if token_start >= 0:
            token_start = -1
            _value_done(stack)

    for i, ch in enumerate(s):
        if in_string:
            if escape_at >= 0:
                if escape_left == 5 and ch != "u":
                    escape_left = 1
                escape_left -= 1
                if escape_left == 0:
                    escape_at = -1
                continue
            if ch == "\\":
                escape_at = i
                escape_left = 5
                continue
            if ch == '"':
                in_string = False
                if string_is_key:
                    stack[-1].state = _COLON
                else:
                    _value_done(stack)
            continue

        if ch == '"':
            end_token()
            in_string = True
            string_start = i
            string_is_key = bool(stack) and stack[-1].is_object and stack[-1].state == _KEY
            if string_is_key:
                stack[-1].member_start = i
        elif ch in "{[":
            end_token()
            stack.append(_Frame(ch))
        elif ch in "}]":
            end_token()
            if stack and stack[-1].closer == ch:
                stack.pop()
                _value_done(stack)
        elif ch == ":":
            end_token()
            if stack and stack[-1].state == _COLON:
                stack[-1].state = _VALUE
        elif ch == ",":
            end_token()
            if stack and stack[-1].state == _AFTER_VALUE:
                stack[-1].state = _KEY if stack[-1].is_object else _VALUE
        elif ch.isspace():
            end_token()
        elif token_start < 0:
            token_start = i

    out = s
    if in_string:
        if string_is_key:
            out = s[:string_start]
        else:
            if escape_at >= 0:
                out = s[:escape_at]
            out += '"'
            _value_done(stack)
    elif token_start >= 0:
        token = s[token_start:]
        if token in _LITERALS or _NUMBER_RE.fullmatch(token):
            _value_done(stack)
        else:
            out = s[:token_start]

    top = stack[-1] if stack else None
    if top is not None and top.is_object and top.state in (_COLON, _VALUE) and top.member_start >= 0:
        # key without a (complete) value
        out = out[: top.member_start]

    out = _TRAILING_COMMA_RE.sub("", out.rstrip())

    while stack:
        out += stack.pop().closer

    return out
