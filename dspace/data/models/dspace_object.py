"""DSpace content models: items, bundles and bitstreams."""

from __future__ import annotations

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from .hal import HALResource


class MetadataValue(BaseModel):
    value: str
    language: str | None = None
    authority: str | None = None
    confidence: int = -1
    place: int = 0

    model_config = ConfigDict(frozen=True, extra="ignore")


class DSpaceObject(HALResource):
    """Fields shared by every DSpace content object."""

    uuid: str | None = None
    name: str | None = None
    handle: str | None = None
    metadata: dict[str, list[MetadataValue]] = Field(default_factory=dict)

    def first_metadata_value(self, key: str) -> str | None:
        values = self.metadata.get(key)
        return values[0].value if values else None


class Item(DSpaceObject):
    relations: ClassVar[dict[str, str]] = {
        "bundles": "bundle",
        "owningCollection": "collection",
        "mappedCollections": "collection",
        "relationships": "relationship",
        "templateItemOf": "collection",
        "thumbnail": "bitstream",
        "version": "version",
    }

    in_archive: bool = Field(False, alias="inArchive")
    discoverable: bool = True
    withdrawn: bool = False
    last_modified: str | None = Field(None, alias="lastModified")


class Bundle(DSpaceObject):
    relations: ClassVar[dict[str, str]] = {
        "bitstreams": "bitstream",
        "primaryBitstream": "bitstream",
        "item": "item",
    }


class CheckSum(BaseModel):
    check_sum_algorithm: str = Field(..., alias="checkSumAlgorithm")
    value: str

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Bitstream(DSpaceObject):
    relations: ClassVar[dict[str, str]] = {
        "bundle": "bundle",
        "format": "bitstreamformat",
        "thumbnail": "bitstream",
    }

    size_bytes: int | None = Field(None, alias="sizeBytes")
    check_sum: CheckSum | None = Field(None, alias="checkSum")
    sequence_id: int | None = Field(None, alias="sequenceId")
    bundle_name: str | None = Field(None, alias="bundleName")

    @property
    def content_href(self) -> str | None:
        """Download link of the file content."""
        return self.link_href("content")
