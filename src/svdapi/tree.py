# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Minimal attribute tree interface used by the element bindings.

The model builder only ever needs to list the children of a node, read an attribute and read
the text content of a node. Any document representation that offers these three operations can
be used as input; the lxml adapter below is the one used when parsing SVD files.
"""

from __future__ import annotations

from typing import Iterator, Optional, Protocol

import lxml.etree as ET


class TreeNode(Protocol):
    """Read-only view of a node in a parsed document."""

    @property
    def tag(self) -> str:
        ...

    def children(self, *tags: str) -> Iterator[TreeNode]:
        """Iterate over the child nodes, optionally filtered by tag."""
        ...

    def attribute(self, name: str) -> Optional[str]:
        """Value of the attribute with the given name, or None if not present."""
        ...

    def text(self) -> Optional[str]:
        """Text content of the node, or None if the node has no text."""
        ...


class LxmlNode:
    """TreeNode implementation backed by an lxml element."""

    __slots__ = ["_element"]

    def __init__(self, element: ET._Element) -> None:
        self._element: ET._Element = element

    @property
    def tag(self) -> str:
        return str(self._element.tag)

    @property
    def sourceline(self) -> Optional[int]:
        """Line number of the element in the source document, if known."""
        return self._element.sourceline

    def children(self, *tags: str) -> Iterator[LxmlNode]:
        for child in self._element.iterchildren(*tags):
            # Comments and processing instructions have non-string tags
            if isinstance(child.tag, str):
                yield LxmlNode(child)

    def attribute(self, name: str) -> Optional[str]:
        return self._element.get(name)

    def text(self) -> Optional[str]:
        return self._element.text

    def __repr__(self) -> str:
        line = f":{self.sourceline}" if self.sourceline is not None else ""
        return f"<{self.tag}{line}>"
