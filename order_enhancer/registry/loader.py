"""
Schema loader - parses YAML configuration into canonical export schemas.

A canonical schema maps each output column (display name) to the ordered
list of source column names accepted for it. Several variants exist for
different export contexts; each one is loaded and validated on its own.
"""
from collections.abc import Hashable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


DEFAULT_SCHEMA_PATH = Path(__file__).resolve().parent / "schemas.yaml"


class SchemaError(ValueError):
    """Raised when a canonical schema definition is invalid."""

    pass


class UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects duplicate mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise SchemaError(
                    f"Duplicate key '{key}' at line {key_node.start_mark.line + 1}"
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


@dataclass(frozen=True)
class CanonicalSchema:
    """Ordered mapping of display name -> acceptable source column names."""

    name: str
    columns: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "CanonicalSchema":
        """Parse a schema from a YAML mapping (insertion order is kept)."""
        if not isinstance(data, dict):
            raise SchemaError(f"Schema {name}: expected a mapping, got {type(data).__name__}")

        columns: Dict[str, List[str]] = {}
        for display_name, fallbacks in data.items():
            if isinstance(fallbacks, str):
                fallbacks = [fallbacks]
            key = str(display_name).strip()
            if key in columns:
                raise SchemaError(f"Schema {name}: duplicate display name '{key}'")
            columns[key] = [str(f) for f in (fallbacks or [])]

        schema = cls(name=name, columns=columns)
        schema.validate()
        return schema

    @property
    def display_names(self) -> List[str]:
        return list(self.columns.keys())

    def fallbacks(self, display_name: str) -> List[str]:
        """Acceptable source names for a display name, in priority order."""
        return list(self.columns.get(display_name, []))

    def validate(self) -> None:
        """
        Validate schema definition.

        Checks:
        - At least one column
        - No blank display names
        - Every display name has at least one acceptable source name
        """
        if not self.columns:
            raise SchemaError(f"Schema {self.name}: no columns defined")

        for display_name, fallbacks in self.columns.items():
            if not display_name.strip():
                raise SchemaError(f"Schema {self.name}: blank display name")
            if not fallbacks:
                raise SchemaError(
                    f"Schema {self.name}: column '{display_name}' has no acceptable source names"
                )
            blank = [f for f in fallbacks if not f.strip()]
            if blank:
                raise SchemaError(
                    f"Schema {self.name}: column '{display_name}' has blank source names"
                )

    def __len__(self) -> int:
        return len(self.columns)


@dataclass
class SchemaRegistry:
    """All schema variants defined in one configuration file."""

    version: int
    schemas: Dict[str, CanonicalSchema] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SchemaRegistry":
        """Parse the full registry from a YAML dict."""
        if not isinstance(data, dict) or "schemas" not in data:
            raise SchemaError("Schema file must define a top-level 'schemas' mapping")

        raw_schemas = data.get("schemas") or {}
        if not isinstance(raw_schemas, dict) or not raw_schemas:
            raise SchemaError("Schema file defines no schemas")

        schemas = {
            schema_name: CanonicalSchema.from_dict(schema_name, schema_data)
            for schema_name, schema_data in raw_schemas.items()
        }

        return cls(version=int(data.get("version", 1)), schemas=schemas)

    @property
    def names(self) -> List[str]:
        return list(self.schemas.keys())

    def get(self, name: str) -> CanonicalSchema:
        if name not in self.schemas:
            raise SchemaError(
                f"Schema '{name}' not found (available: {', '.join(self.names)})"
            )
        return self.schemas[name]


class SchemaLoader:
    """
    Loader for canonical schema configuration.

    Loads the YAML file once and caches the parsed registry in memory.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize loader.

        Args:
            path: Path to schema YAML file (default: packaged schemas.yaml)
        """
        self.path = Path(path) if path else DEFAULT_SCHEMA_PATH
        self._cache: Optional[SchemaRegistry] = None

    def load(self, force_reload: bool = False) -> SchemaRegistry:
        """
        Load and validate the schema registry.

        Args:
            force_reload: If True, bypass cache and reload from disk

        Returns:
            Validated SchemaRegistry
        """
        if self._cache and not force_reload:
            return self._cache

        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = yaml.load(f, Loader=UniqueKeyLoader)
            except yaml.YAMLError as e:
                raise SchemaError(f"Cannot parse {self.path}: {e}")

        registry = SchemaRegistry.from_dict(data)

        self._cache = registry
        return registry

    def get_schema(self, name: str) -> CanonicalSchema:
        """Get a schema variant by name."""
        return self.load().get(name)
