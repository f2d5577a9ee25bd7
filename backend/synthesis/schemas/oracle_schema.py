"""
Oracle Schema - Request bundles and response documents

The oracle is an opaque `request -> text` function. These models are the
request bundles handed to it and the document shape expected back.
"""
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from .catalog_schema import PhaseCatalog
from .plan_schema import UnitGroup
from .repair_schema import BuildErrorRecord


class GenerationRequest(BaseModel):
    """Everything the oracle needs to synthesize one group"""
    kind: Literal["generate"] = "generate"
    group: UnitGroup
    unit_order: List[str] = Field(default_factory=list, description="Resolved unit order")
    bindings: Dict[str, str] = Field(default_factory=dict)
    allowed_paths: List[str] = Field(default_factory=list)
    prior_catalog: List[PhaseCatalog] = Field(default_factory=list)
    existing_files: Dict[str, str] = Field(default_factory=dict, description="Transform targets (path → content)")
    style_rules: str = Field("")


class CorrectionRequest(BaseModel):
    """A targeted correction request issued by the Repair Loop"""
    kind: Literal["correct"] = "correct"
    group_id: str
    iteration: int
    errors: List[BuildErrorRecord] = Field(default_factory=list)
    files: Dict[str, str] = Field(default_factory=dict, description="Referenced file path → current content")
    prior_catalog: List[PhaseCatalog] = Field(default_factory=list)
    style_rules: str = Field("")


class FileEntry(BaseModel):
    """One file in an oracle response"""
    path: str = Field("", validation_alias=AliasChoices("path", "output_path"))
    content: str = Field("")
    unit_id: Optional[str] = Field(None, validation_alias=AliasChoices("unit_id", "module_id"))


def files_from_document(document: Any) -> List[FileEntry]:
    """
    Read file entries from a parsed response document

    Accepts {"files": [...]} or a bare list of entries. Entries that are not
    objects are skipped; entries with an empty path or content are kept so
    scope enforcement can reject them with a reason.

    Raises:
        ValueError: If the document has no file list at all
    """
    if isinstance(document, dict):
        raw = document.get("files")
    else:
        raw = document
    if not isinstance(raw, list):
        raise ValueError("response document has no 'files' list")

    entries = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            entries.append(FileEntry.model_validate(item))
        except ValidationError:
            continue
    return entries


__all__ = [
    "GenerationRequest",
    "CorrectionRequest",
    "FileEntry",
    "files_from_document",
]
