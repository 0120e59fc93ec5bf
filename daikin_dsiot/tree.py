"""Addressable view over the frames returned by a dsiot query."""

from __future__ import annotations

from collections.abc import Callable, Mapping, MutableSequence, Sequence
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from . import codec
from .exceptions import FieldNotFoundError, ProtocolDecodeError
from .protocol import DsiotResponse, NodeMetadata, Patch, TreeNode

Encoder = Callable[[Any, NodeMetadata], str]


def _split(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def _find(nodes: Sequence[TreeNode] | None, name: str) -> TreeNode | None:
    for node in nodes or ():
        if node.name == name:
            return node
    return None


class ParameterTree:
    """Read-only set of frame trees keyed by their resource path."""

    def __init__(self, frames: Mapping[str, TreeNode]) -> None:
        """Store the frame roots returned by the device."""

        self._frames: Mapping[str, TreeNode] = MappingProxyType(dict(frames))

    @classmethod
    def from_response(cls, document: Any) -> ParameterTree:
        """Validate a raw JSON response and index its frames."""

        try:
            response = DsiotResponse.model_validate(document)
        except ValidationError as err:
            raise ProtocolDecodeError(f"Malformed dsiot response: {err}") from err
        return cls(
            {
                item.frame: item.payload
                for item in response.responses
                if item.payload is not None
            }
        )

    @property
    def frames(self) -> Mapping[str, TreeNode]:
        """Expose the indexed frame roots."""

        return self._frames

    def _resolve(self, frame: str, path: str) -> TreeNode | None:
        root = self._frames.get(frame)
        if root is None:
            return None
        node: TreeNode | None = root
        for name in _split(path):
            if node is None or node.is_leaf:
                return None
            node = _find(node.children, name)
        return node

    def _leaf(self, frame: str, path: str) -> TreeNode | None:
        node = self._resolve(frame, path)
        if node is None or not node.is_leaf:
            return None
        return node

    def extract_string(self, frame: str, path: str) -> str | None:
        """Return the raw value at ``path`` or ``None`` when absent."""

        node = self._leaf(frame, path)
        if node is None:
            return None
        return node.value if isinstance(node.value, str) else str(node.value)

    def extract_leaf(self, frame: str, path: str) -> TreeNode:
        """Return the leaf at ``path`` together with its metadata.

        Raises ``FieldNotFoundError`` if the leaf or its metadata is missing.

        """

        node = self._leaf(frame, path)
        if node is None or node.metadata is None:
            raise FieldNotFoundError(frame, path)
        return node

    def extract_int(self, frame: str, path: str) -> int | None:
        """Decode the value at ``path`` truncated to an integer."""

        node = self._leaf(frame, path)
        if node is None or not isinstance(node.value, str):
            return None
        try:
            return codec.decode_int(node.value, node.metadata)
        except ValueError as err:
            raise ProtocolDecodeError(f"Undecodable value at {path!r}: {err}") from err

    def extract_float(self, frame: str, path: str) -> float | None:
        """Decode the value at ``path`` as a float."""

        node = self._leaf(frame, path)
        if node is None or not isinstance(node.value, str):
            return None
        try:
            return codec.decode_float(node.value, node.metadata)
        except ValueError as err:
            raise ProtocolDecodeError(f"Undecodable value at {path!r}: {err}") from err

    def extract_min_max(
        self, frame: str, path: str
    ) -> tuple[float | None, float | None] | None:
        """Return the declared bounds of a field, decoded with its scale."""

        node = self._leaf(frame, path)
        if node is None or node.metadata is None:
            return None
        metadata = node.metadata
        try:
            minimum = (
                codec.decode_float(metadata.minimum, metadata)
                if metadata.minimum
                else None
            )
            maximum = (
                codec.decode_float(metadata.maximum, metadata)
                if metadata.maximum
                else None
            )
        except ValueError as err:
            raise ProtocolDecodeError(f"Undecodable bounds at {path!r}: {err}") from err
        return minimum, maximum

    def inject_path(
        self, frame: str, path: str, value: Any, encoder: Encoder
    ) -> Patch:
        """Build a minimal fragment that sets ``path`` to ``value``."""

        leaf = self.extract_leaf(frame, path)
        return leaf_fragment(path, encoder(value, leaf.metadata))

    def encode_int(self, frame: str, path: str, value: float | int) -> Patch:
        """Build a fragment with ``value`` truncated and encoded."""

        return self.inject_path(frame, path, value, codec.encode_int)

    def encode_float(self, frame: str, path: str, value: float) -> Patch:
        """Build a fragment with ``value`` encoded at the field's scale."""

        return self.inject_path(frame, path, value, codec.encode)


def leaf_fragment(path: str, value: str) -> Patch:
    """Build a fragment carrying a literal hex ``value`` at ``path``."""

    names = _split(path)
    if not names:
        raise ValueError("Fragment path is empty")
    node = TreeNode(name=names[-1], value=value)
    for name in reversed(names[:-1]):
        node = TreeNode(name=name, children=[node])
    return [node]


def merge_trees(
    dst: MutableSequence[TreeNode], src: Sequence[TreeNode]
) -> MutableSequence[TreeNode]:
    """Merge ``src`` into ``dst`` in place and return ``dst``.

    Same-named leaves take the source value, same-named branches merge
    recursively and anything else is appended as a copy.

    """

    for incoming in src:
        existing = _find(dst, incoming.name)
        if existing is None:
            dst.append(incoming.model_copy(deep=True))
        elif incoming.is_leaf:
            existing.children = None
            existing.value = incoming.value
        elif existing.children is None:
            existing.value = None
            existing.children = [
                child.model_copy(deep=True) for child in incoming.children or ()
            ]
        else:
            merge_trees(existing.children, incoming.children or ())
    return dst
