"""Wire document models for the dsiot multi-request endpoint."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .const import (
    FILTERED_FRAMES,
    FRAME_DEVICE_INFO,
    OP_READ,
    OP_WRITE,
    STATUS_FRAMES,
    STATUS_ROOT_NAME,
)


class NodeMetadata(BaseModel):
    """Encoding metadata attached to a leaf node."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    step: int = Field(default=0, alias="st")
    minimum: str | None = Field(default=None, alias="mi")
    maximum: str | None = Field(default=None, alias="mx")


class TreeNode(BaseModel):
    """Single node of a frame tree, either a leaf or a branch."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(alias="pn")
    value: Any = Field(default=None, alias="pv")
    metadata: NodeMetadata | None = Field(default=None, alias="md")
    children: list[TreeNode] | None = Field(default=None, alias="pch")

    @model_validator(mode="after")
    def _check_shape(self) -> TreeNode:
        if self.value is not None and self.children is not None:
            raise ValueError(f"Node {self.name!r} carries both a value and children")
        return self

    @property
    def is_leaf(self) -> bool:
        """Return True when the node carries a value."""

        return self.value is not None

    def child(self, name: str) -> TreeNode | None:
        """Return the direct child called ``name`` if present."""

        for node in self.children or ():
            if node.name == name:
                return node
        return None

    def to_wire(self) -> dict[str, Any]:
        """Serialise the node using the wire key names."""

        return self.model_dump(by_alias=True, exclude_none=True)


TreeNode.model_rebuild()

Patch = list[TreeNode]


class FrameResponse(BaseModel):
    """One frame returned by the device."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    frame: str = Field(alias="fr")
    payload: TreeNode | None = Field(default=None, alias="pc")
    status: int | None = Field(default=None, alias="rsc")


class DsiotResponse(BaseModel):
    """Top-level multi-response document."""

    model_config = ConfigDict(extra="ignore")

    responses: list[FrameResponse]


class FrameRequest(BaseModel):
    """One read or write operation addressed to a frame."""

    model_config = ConfigDict(populate_by_name=True)

    op: int
    to: str
    payload: TreeNode | None = Field(default=None, alias="pc")


class DsiotRequest(BaseModel):
    """Top-level multi-request document."""

    requests: list[FrameRequest]

    def to_wire(self) -> dict[str, Any]:
        """Serialise the request into the JSON body sent to the device."""

        return self.model_dump(by_alias=True, exclude_none=True)


def frame_path(frame: str, *, filtered: bool = False) -> str:
    """Return the resource path for ``frame``, optionally filtered to values."""

    return f"{frame}?filter=pv" if filtered else frame


def read_request(frames: Iterable[str], *, filtered: bool = False) -> DsiotRequest:
    """Build a read request covering ``frames``."""

    return DsiotRequest(
        requests=[
            FrameRequest(op=OP_READ, to=frame_path(frame, filtered=filtered))
            for frame in frames
        ]
    )


def status_query() -> DsiotRequest:
    """Build the full snapshot query used by every refresh."""

    info = read_request(FILTERED_FRAMES, filtered=True)
    status = read_request(STATUS_FRAMES)
    return DsiotRequest(requests=[*info.requests, *status.requests])


def probe_request() -> DsiotRequest:
    """Build the minimal query used to classify a device."""

    return read_request((FRAME_DEVICE_INFO,), filtered=True)


def write_request(
    frame: str, patch: Sequence[TreeNode], *, root_name: str = STATUS_ROOT_NAME
) -> DsiotRequest:
    """Wrap ``patch`` into a single write request for ``frame``."""

    return DsiotRequest(
        requests=[
            FrameRequest(
                op=OP_WRITE,
                to=frame,
                payload=TreeNode(name=root_name, children=list(patch)),
            )
        ]
    )
