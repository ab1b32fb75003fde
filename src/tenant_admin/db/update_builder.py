"""Allow-listed column updates for PATCH/PUT style endpoints.

Request bodies are turned into ``UPDATE ... SET`` values only through an
:class:`UpdatableFields` declaration, so a column name never reaches SQL
unless it was listed explicitly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


class UnknownFieldError(ValueError):
    """Raised when a change names a column outside the allow-list."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Fields not updatable: {', '.join(fields)}")


class NoFieldsToUpdate(ValueError):
    """Raised when a change set is empty."""

    def __init__(self) -> None:
        super().__init__("No fields to update")


class NullFieldError(ValueError):
    """Raised when a change sets a non-nullable column to None."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Fields cannot be null: {', '.join(fields)}")


@dataclass(frozen=True)
class UpdatableFields:
    """Columns a caller may change, plus the subsets holding JSON text or rejecting None."""

    allowed: frozenset[str]
    json_fields: frozenset[str] = field(default_factory=frozenset)
    non_nullable: frozenset[str] = field(default_factory=frozenset)

    def build(self, changes: dict[str, Any]) -> dict[str, Any]:
        """Return column -> bound value for *changes*.

        Raises:
            UnknownFieldError: if any key is not in ``allowed``.
            NoFieldsToUpdate: if *changes* is empty.
            NullFieldError: if a ``non_nullable`` column is set to None.
        """
        unknown = sorted(set(changes) - self.allowed)
        if unknown:
            raise UnknownFieldError(unknown)
        if not changes:
            raise NoFieldsToUpdate()
        nulls = sorted(
            name for name in self.non_nullable if name in changes and changes[name] is None
        )
        if nulls:
            raise NullFieldError(nulls)

        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name in self.json_fields and value is not None:
                values[name] = json.dumps(value)
            else:
                values[name] = value
        return values
