"""
Column mapper - resolve an input header against a canonical schema.

Matching is exact string equality after trimming (no case folding, no
fuzzy matching). For each display name the acceptable source names are
tried in priority order; the first one found in the header wins. Display
names with no match stay in the mapping as absent (None).
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from order_enhancer.registry.loader import CanonicalSchema


logger = logging.getLogger(__name__)

# Column name -> raw value, in header order
Row = Dict[str, str]


@dataclass(frozen=True)
class ColumnMapping:
    """Display name -> source column index, or None when absent."""

    header: Tuple[str, ...]
    targets: Dict[str, Optional[int]] = field(default_factory=dict)

    @property
    def display_names(self) -> List[str]:
        return list(self.targets.keys())

    @property
    def matched(self) -> Dict[str, int]:
        """Only the display names that were found in the header."""
        return {name: idx for name, idx in self.targets.items() if idx is not None}

    @property
    def unmapped(self) -> List[str]:
        return [name for name, idx in self.targets.items() if idx is None]

    @property
    def is_empty(self) -> bool:
        """True when not a single canonical column matched the header."""
        return not self.matched

    def index(self, display_name: str) -> Optional[int]:
        return self.targets.get(display_name)

    def source_name(self, display_name: str) -> Optional[str]:
        """Header column name a display name was mapped to."""
        idx = self.index(display_name)
        if idx is None:
            return None
        return self.header[idx]

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Display name -> source column name (None if absent)."""
        return {name: self.source_name(name) for name in self.targets}

    def __iter__(self) -> Iterator[Tuple[str, Optional[int]]]:
        return iter(self.targets.items())

    def __len__(self) -> int:
        return len(self.targets)


def build_row(header: Sequence[str], values: Sequence[str]) -> Row:
    """
    Combine a header and a positional row into a Row.

    Header names are trimmed; when a name repeats, the first column wins.
    """
    row: Row = {}
    for idx, name in enumerate(header):
        key = str(name).strip()
        if key in row:
            continue
        row[key] = values[idx] if idx < len(values) and values[idx] is not None else ""
    return row


def find_column(header: Sequence[str], names: Sequence[str]) -> Optional[int]:
    """
    Index of the first acceptable name present in the header.

    Names are tried in order; for each name the first matching header
    position wins. Header cells are compared after trimming.
    """
    trimmed = [str(h).strip() for h in header]
    for name in names:
        try:
            return trimmed.index(name.strip())
        except ValueError:
            continue
    return None


def map_header(header: Sequence[str], schema: CanonicalSchema) -> ColumnMapping:
    """
    Map every display name in the schema to a header index.

    Pure: the same (header, schema) always yields the same mapping.

    Args:
        header: Input header cells in file order
        schema: Canonical schema variant

    Returns:
        ColumnMapping total over the schema's display names
    """
    targets: Dict[str, Optional[int]] = {}

    for display_name, fallbacks in schema.columns.items():
        idx = find_column(header, fallbacks)
        targets[display_name] = idx
        if idx is not None:
            logger.debug("Mapped %s -> %s", header[idx], display_name)

    return ColumnMapping(header=tuple(str(h).strip() for h in header), targets=targets)
