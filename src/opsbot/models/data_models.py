"""
Data Models for the search layer

Records are opaque upstream entities; the search layer only reads them
through the configured search fields. Search configurations are immutable
and resolved once per call.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


FIELD_OVERRIDE_KEYS = ("search_fields", "display_field", "secondary_field")


@dataclass
class Record:
    """One upstream entity: stable id plus the source-owned field map"""
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Page:
    """One page of a paginated listing endpoint"""
    records: List[Record] = field(default_factory=list)
    next_cursor: Optional[str] = None


class SearchConfig(BaseModel):
    """Which fields take part in scoring and display."""

    model_config = ConfigDict(frozen=True)

    search_fields: Tuple[str, ...] = Field(default_factory=tuple)
    display_field: str = ""
    secondary_field: str = ""

    @field_validator("search_fields", mode="before")
    @classmethod
    def clean_search_fields(cls, v):
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        return tuple(name.strip() for name in v if name and name.strip())

    @field_validator("display_field", "secondary_field", mode="before")
    @classmethod
    def clean_field_name(cls, v):
        return (v or "").strip()

    @property
    def display(self) -> str:
        """Primary name field; defaults to the first search field"""
        if self.display_field:
            return self.display_field
        return self.search_fields[0] if self.search_fields else ""

    @property
    def requested_fields(self) -> List[str]:
        """Field projection for listing calls, order preserved"""
        names = list(self.search_fields)
        if self.display:
            names.append(self.display)
        if self.secondary_field:
            names.append(self.secondary_field)
        return list(dict.fromkeys(names))

    @staticmethod
    def changes_fields(overrides: Optional[Mapping[str, Any]]) -> bool:
        """True when an override sets any of the field keys"""
        if not overrides:
            return False
        return any(overrides.get(key) for key in FIELD_OVERRIDE_KEYS)

    def with_overrides(self, overrides: Optional[Mapping[str, Any]]) -> "SearchConfig":
        """Apply per-call overrides; only keys that are present take effect"""
        if not overrides:
            return self
        search_fields = overrides.get("search_fields", self.search_fields)
        if search_fields is None:
            search_fields = self.search_fields
        display_field = overrides.get("display_field", self.display_field)
        secondary_field = overrides.get("secondary_field", self.secondary_field)
        return SearchConfig(
            search_fields=search_fields,
            display_field=display_field,
            secondary_field=secondary_field,
        )
