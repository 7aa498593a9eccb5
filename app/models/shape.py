"""Inferred object-structure schema."""

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class SchemaShape:
    """Field names sampled from one record of an object structure.

    A sample, not a complete schema: a field that is absent from the
    sampled record is unknown until the next refresh.
    """
    object_structure: str
    fields: List[str]  # sorted
    discovered_at: int  # epoch milliseconds
