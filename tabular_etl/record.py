"""
In-memory representation of one source row or line.

``Record`` knows almost nothing about the file format it came from. Every
input adapter produces the same shape, which lets a single mapping layer
(``tabular_etl.pipeline``) serve spreadsheets and delimited text alike.

Keys are 1-based positions for adapter-built records; ``from_keyed_values``
accepts any hashable keys.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(eq=False)
class Record:
    """One row of source data plus where it came from.

    Attributes:
        fields: Read-only mapping of field key -> scalar value.
        provenance: Text for error messages, e.g.
            ``"CSV file 'in.csv', line 12"``.
        is_blank: True when the adapter decided the row carries no data.
    """

    fields: Mapping[Hashable, Any] = field(default_factory=dict)
    provenance: str = ""
    is_blank: bool = False

    def __post_init__(self) -> None:
        self.fields = MappingProxyType(dict(self.fields))

    @classmethod
    def from_ordered_values(cls, *values: Any) -> Record:
        """Build a record keyed ``1..N`` from a list of values.

        Accepts either the values themselves or a single list/tuple
        holding them; ``from_ordered_values("a", "b")`` and
        ``from_ordered_values(["a", "b"])`` are the same record.
        """
        if len(values) == 1 and isinstance(values[0], (list, tuple)):
            values = tuple(values[0])
        return cls(fields={index: value for index, value in enumerate(values, start=1)})

    @classmethod
    def from_keyed_values(cls, mapping: Mapping[Hashable, Any]) -> Record:
        return cls(fields=mapping)

    def get(self, key: Hashable, default: Any = None) -> Any:
        """Return the value for *key*, or *default* when it is absent."""
        return self.fields.get(key, default)

    def keys(self) -> Iterable[Hashable]:
        return self.fields.keys()

    def __contains__(self, key: object) -> bool:
        return key in self.fields

    def __len__(self) -> int:
        return len(self.fields)


def values_are_blank(values: Iterable[Any]) -> bool:
    """True when every value is ``None`` or whitespace-only text.

    An empty sequence is blank too.
    """
    for value in values:
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return False
    return True
