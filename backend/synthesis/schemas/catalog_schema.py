"""
Catalog Schema - Cross-phase symbol knowledge

A PhaseCatalog lists the primary declarations a group produced. Later groups
receive every earlier PhaseCatalog so they reference those symbols by their
exact names instead of re-declaring them.
"""
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SymbolKind(str, Enum):
    """Coarse declaration kind"""
    TYPE = "type"
    INTERFACE = "interface"
    ENUMERATION = "enumeration"
    RECORD = "record"


class CatalogEntry(BaseModel):
    """One catalogued symbol"""
    model_config = ConfigDict(frozen=True)

    fqn: str = Field(..., description="Fully-qualified name (e.g., 'com.bank.customer.domain.model.Customer')")
    simple_name: str = Field(...)
    package: str = Field("")
    kind: SymbolKind = Field(...)
    construction_contract: Optional[str] = Field(None, description="How later groups must obtain/use it")
    source_group: str = Field(..., description="Group that produced the declaration")
    source_unit: str = Field("", description="Unit that produced the declaration")
    source_path: str = Field(..., description="Project-relative file path")


class PhaseCatalog(BaseModel):
    """All entries recorded for one group"""
    model_config = ConfigDict(frozen=True)

    group_id: str
    phase: int
    entries: Tuple[CatalogEntry, ...] = Field(default_factory=tuple)


class CatalogConflict(BaseModel):
    """A generate group redeclared an already-catalogued name"""
    model_config = ConfigDict(frozen=True)

    fqn: str
    existing_group: str
    existing_path: str
    redeclaring_group: str
    redeclaring_path: str

    def __str__(self) -> str:
        return (
            f"{self.fqn} redeclared by group {self.redeclaring_group} ({self.redeclaring_path}); "
            f"already catalogued by group {self.existing_group} ({self.existing_path})"
        )


class CatalogUpdate(BaseModel):
    """Result of recording one group's entries"""
    catalog: PhaseCatalog
    conflicts: List[CatalogConflict] = Field(default_factory=list)


__all__ = [
    "SymbolKind",
    "CatalogEntry",
    "PhaseCatalog",
    "CatalogConflict",
    "CatalogUpdate",
]
