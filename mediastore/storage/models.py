# mediastore/storage/models.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

SIDECAR_RELOCATED = "relocated"
SIDECAR_ABSENT = "absent"
SIDECAR_FAILED = "failed"

FALLBACK_NOTE = "Fallback metadata, no .meta.json found"


@dataclass(frozen=True)
class Address:
    """A validated namespace node: tenant / collection / optional subdir."""

    tenant_id: str
    collection_id: str
    subdir: str = ""


class AssetMetadata(BaseModel):
    """Sidecar document written at commit time (JSON keys are the aliases)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    filename: str
    stored_name: str = Field(alias="storedName")
    original_name: str = Field(alias="originalname")
    mime_type: str = Field(alias="mimetype")
    size: int
    uploaded_at: str = Field(alias="uploadedAt")
    url: str
    download_url: str = Field(alias="downloadUrl")
    tenant_id: str = Field(alias="tenantId")
    collection_id: str = Field(alias="collectionId")
    dir: str = ""

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class Metadata:
    fields: Dict[str, Any]

    authoritative: ClassVar[bool] = False

    def to_payload(self) -> Dict[str, Any]:
        return dict(self.fields)


@dataclass(frozen=True)
class AuthoritativeMetadata(Metadata):
    """Read back from the asset's sidecar."""

    authoritative: ClassVar[bool] = True


@dataclass(frozen=True)
class DerivedMetadata(Metadata):
    """Rebuilt from filesystem stat because no usable sidecar exists."""

    authoritative: ClassVar[bool] = False


@dataclass
class AssetFile:
    file_id: str
    abs_path: Path
    original_name: str
    mime: Optional[str]
    size: Optional[int]


@dataclass
class RelocationResult:
    filename: str
    address: Address
    sidecar: str

    @property
    def consistent(self) -> bool:
        # bytes moved; sidecar either followed or never existed
        return self.sidecar != SIDECAR_FAILED
