"""Errors raised while loading and building SPIR-V grammar tables."""

from __future__ import annotations

from typing import Any


class TableGenError(RuntimeError):
    """Raised when the grammar cannot be compiled into tables."""


class MalformedGrammarEntry(TableGenError):
    """A record does not have the shape its descriptor type expects."""

    def __init__(self, entry: str, message: str) -> None:
        super().__init__(f"malformed grammar entry '{entry}': {message}")
        self.entry = entry


class DuplicateOpcode(TableGenError):
    """Two values in one section, or two instructions in one set, collide."""

    def __init__(self, where: str, opcode: Any, names: Any = (), what: str = "enum value") -> None:
        detail = f" ({', '.join(names)})" if names else ""
        super().__init__(f"duplicate {what} {opcode!r} in {where}{detail}")
        self.where = where
        self.opcode = opcode


class UnresolvedReference(TableGenError):
    """A capability or operand name does not name an existing record."""

    def __init__(self, entry: str, reference: str, kind: str) -> None:
        super().__init__(f"'{entry}' references unknown {kind} '{reference}'")
        self.entry = entry
        self.reference = reference
        self.kind = kind
