"""Lisp-style response encoding read by the editor."""
from __future__ import annotations

from typing import Iterable

SUCCESS = "(success . t)"
NIL = "nil"
END_OF_RESPONSE = "\n;;EOT\n"


def quote(value: str) -> str:
    """Double-quote a string, escaping only backslashes and double quotes."""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def atom(value: str | int) -> str:
    if isinstance(value, int):
        return str(value)
    return quote(value)


def sexp_list(items: Iterable[str | int]) -> str:
    return "(" + " ".join(atom(item) for item in items) + ")"
