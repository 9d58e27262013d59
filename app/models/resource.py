# app/models/resource.py
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Dict, Any

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Identifier:
    """
    SQL identifier (table or column name) that passed validation at registration time.

    Only configuration code creates these; request values are never wrapped in an
    Identifier, so anything interpolated into SQL text comes from the registry.
    """

    __slots__ = ("name",)

    def __init__(self, name: str):
        if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
            raise ValueError(f"Invalid SQL identifier: {name!r}")
        object.__setattr__(self, "name", name)

    def __setattr__(self, key, value):
        raise AttributeError("Identifier is immutable")

    @property
    def quoted(self) -> str:
        return f'"{self.name}"'

    def __eq__(self, other):
        if isinstance(other, Identifier):
            return self.name == other.name
        return NotImplemented

    def __hash__(self):
        return hash(self.name)

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"Identifier({self.name!r})"


@dataclass(frozen=True)
class ColumnSpec:
    """Display column: drives search scope, filter typing and sort validation"""
    key: Identifier
    label: str
    type: str = "text"
    filterable: bool = False
    exact: bool = False  # explicitly enumerable, compared by equality
    options: Tuple[str, ...] = ()

    @property
    def matches_exactly(self) -> bool:
        return self.exact or self.type == "select" or bool(self.options)


@dataclass(frozen=True)
class FieldSpec:
    """Writable / importable field"""
    key: Identifier
    label: str
    type: str = "text"
    required: bool = False
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ResourceConfig:
    key: str
    label: str
    table: Identifier
    primary_key: Identifier
    columns: Tuple[ColumnSpec, ...]
    fields: Tuple[FieldSpec, ...] = ()
    unique_key: Optional[Identifier] = None
    read_only: bool = False
    timestamps: bool = True

    def column(self, key: str) -> Optional[ColumnSpec]:
        return next((c for c in self.columns if c.key.name == key), None)

    def field(self, key: str) -> Optional[FieldSpec]:
        return next((f for f in self.fields if f.key.name == key), None)

    def sortable_columns(self) -> Dict[str, Identifier]:
        """Columns accepted in ORDER BY, keyed by name"""
        allowed = {c.key.name: c.key for c in self.columns}
        allowed[self.primary_key.name] = self.primary_key
        if self.timestamps:
            for name in ("created_at", "updated_at"):
                allowed.setdefault(name, Identifier(name))
        return allowed

    def summary(self) -> Dict[str, Any]:
        """Serializable description used by the admin UI"""
        return {
            "key": self.key,
            "label": self.label,
            "primaryKey": self.primary_key.name,
            "uniqueKey": self.unique_key.name if self.unique_key else None,
            "readOnly": self.read_only,
            "columns": [
                {
                    "key": c.key.name,
                    "label": c.label,
                    "type": c.type,
                    "filterable": c.filterable,
                    "options": list(c.options),
                }
                for c in self.columns
            ],
            "fields": [
                {
                    "key": f.key.name,
                    "label": f.label,
                    "type": f.type,
                    "required": f.required,
                    "options": list(f.options),
                }
                for f in self.fields
            ],
        }
