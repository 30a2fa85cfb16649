# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Various internal functionality used by the bindings module.
"""

from __future__ import annotations

import enum
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Generic,
    Iterator,
    List,
    Literal,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
    overload,
)

from typing_extensions import Self

from .tree import TreeNode


class CaseInsensitiveStrEnum(enum.Enum):
    """String enum class that can be constructed from a case-insensitive string."""

    @classmethod
    def _missing_(cls, value: object) -> Optional[Self]:
        """Handler for string values with mismatched case."""
        if not isinstance(value, str):
            return None

        value_lower = value.lower()
        for member in cls:
            if member.value.lower() == value_lower:
                return member

        return None


# Multipliers for the scale suffixes permitted on SVD integers
_SCALE_SUFFIXES: Mapping[str, int] = MappingProxyType(
    {"k": 1 << 10, "m": 1 << 20, "g": 1 << 30, "t": 1 << 40}
)

# Digits that mark a bit as "don't care" in a binary literal
DONT_CARE_DIGITS = "xX#"

# Upper bound on the number of don't-care digits in a single literal.
# Each don't-care digit doubles the number of values the literal expands to.
MAX_DONT_CARE_DIGITS = 16


def expand_int_pattern(number: str) -> Tuple[int, ...]:
    """
    Convert a string representation of an integer following the SVD format to the integers it
    denotes.

    Decimal (with an optional k/m/g/t scale suffix), hexadecimal ("0x") and binary ("#" or "0b")
    literals are supported. In binary literals, the digits 'x', 'X' and '#' are don't-care digits
    that match both 0 and 1, so "#1x0" expands to (0b100, 0b110).

    :param number: String representation of the integer or bit pattern.

    :return: Sorted tuple of the integers matched by the literal.
    """
    text = number.strip()
    if text.startswith("+"):
        text = text[1:]
    if not text:
        raise ValueError(f"Invalid integer literal: '{number}'")

    lower = text.lower()

    if lower.startswith("#"):
        return _expand_binary(text[1:], number)
    if lower.startswith("0b"):
        return _expand_binary(text[2:], number)

    scale = 1
    if lower[-1] in _SCALE_SUFFIXES:
        scale = _SCALE_SUFFIXES[lower[-1]]
        lower = lower[:-1]

    if lower.startswith("0x"):
        return (int(lower[2:], base=16) * scale,)
    return (int(lower, base=10) * scale,)


def _expand_binary(digits: str, number: str) -> Tuple[int, ...]:
    if not digits:
        raise ValueError(f"Invalid binary literal: '{number}'")

    free_bits = [
        i for i, digit in enumerate(reversed(digits)) if digit in DONT_CARE_DIGITS
    ]
    if len(free_bits) > MAX_DONT_CARE_DIGITS:
        raise ValueError(
            f"Binary literal '{number}' has more than {MAX_DONT_CARE_DIGITS} don't-care digits"
        )

    fixed = "".join("0" if digit in DONT_CARE_DIGITS else digit for digit in digits)
    base_value = int(fixed, base=2)

    values: List[int] = []
    for combination in range(1 << len(free_bits)):
        value = base_value
        for i, bit in enumerate(free_bits):
            if (combination >> i) & 1:
                value |= 1 << bit
        values.append(value)

    return tuple(sorted(values))


def to_int(number: str) -> int:
    """
    Convert a string representation of an integer following the SVD format to its corresponding
    integer representation.

    :param number: String representation of the integer.

    :raises ValueError: If the literal is invalid or contains don't-care digits.

    :return: Decoded integer.
    """
    values = expand_int_pattern(number)
    if len(values) != 1:
        raise ValueError(f"Don't-care digits are not permitted here: '{number}'")
    return values[0]


def to_bool(value: str) -> bool:
    """
    Convert a string representation of a boolean following the SVD format to its corresponding
    boolean representation.

    :param value: String representation of the boolean.

    :return: Decoded boolean.
    """
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def to_name(value: str) -> str:
    """Normalize an element name by trimming surrounding whitespace. Case is preserved."""
    return value.strip()


def to_text(value: str) -> str:
    """Normalize free text (descriptions) by collapsing runs of whitespace."""
    return " ".join(value.split())


class _Missing:
    ...


# Sentinel value used to indicate that a default value is missing.
MISSING = _Missing()


T = TypeVar("T")
E = TypeVar("E", bound="SvdElement")


class SvdElement:
    """Base class for all the SVD element classes."""

    TAG: str

    __slots__ = ["_node", "_parent"]

    def __init__(self, node: TreeNode, parent: Optional[SvdElement] = None) -> None:
        """
        :param node: Tree node wrapped by this element.
        :param parent: Binding of the parent element, if any. Only used for error reporting.
        """
        self._node: TreeNode = node
        self._parent: Optional[SvdElement] = parent

    @property
    def node(self) -> TreeNode:
        """The underlying tree node."""
        return self._node

    @property
    def parent(self) -> Optional[SvdElement]:
        """Binding of the parent element, if known."""
        return self._parent

    def find(self, tag: str) -> Optional[TreeNode]:
        """First child node with the given tag, or None."""
        return next(iter(self._node.children(tag)), None)

    def iter_children(
        self, element_class: Type[E], container: Optional[str] = None
    ) -> Iterator[E]:
        """
        Iterate over the children of this element that correspond to the given binding class.

        :param element_class: Binding class of the children.
        :param container: Tag of an intermediate container element, such as "registers".
        """
        if container is not None:
            parent_node = self.find(container)
            if parent_node is None:
                return
        else:
            parent_node = self._node

        for child in parent_node.children(element_class.TAG):
            yield element_class(child, parent=self)

    def __repr__(self) -> str:
        """
        A more informative string representation than the default one.
        This is mostly useful for the exception tracebacks that occur on parsing errors.
        """
        return self._repr()

    def _repr(
        self,
        props: Mapping[Any, Any] = MappingProxyType({}),
    ) -> str:
        """Default repr() implementation for the binding classes."""
        props_str = f" {dict(props)}" if props else ""
        self_repr = f"[{self._node.tag}{props_str}]"
        if self._parent is not None:
            return f"{self_repr} in {self._parent!r}"
        return self_repr


class Elem(Generic[T]):
    """Data descriptor class used to access the converted text of a child element."""

    def __init__(
        self,
        name: str,
        converter: Callable[[str], T],
        /,
        *,
        default: Union[T, _Missing] = MISSING,
        default_factory: Union[Callable[[], T], _Missing] = MISSING,
    ) -> None:
        """
        Create a data descriptor object that extracts the text of a child element.
        Only one of default or default_factory can be set.

        :param name: Tag of the child element.
        :param converter: Callable that converts the trimmed element text.
        :param default: Default value to return if the element is not found.
        :param default_factory: Callable that returns the default value to return if the element is
                                not found.
        """
        if default != MISSING and default_factory != MISSING:
            raise ValueError("Cannot set both default and default_factory")

        self.name: str = name
        self.converter: Callable[[str], T] = converter
        self.default: Union[T, _Missing] = default
        self.default_factory: Union[Callable[[], T], _Missing] = default_factory

    @overload
    def __get__(self, element: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, element: SvdElement, owner: Optional[Type] = None) -> T:
        ...

    def __get__(
        self, element: Optional[SvdElement], owner: Any = None
    ) -> Union[T, Self]:
        """Get the element value from the given binding."""
        if element is None:
            # Accessed through the class object, return the descriptor itself.
            return self

        node = element.find(self.name)
        text = node.text() if node is not None else None

        if text is None or not text.strip():
            if not isinstance(self.default_factory, _Missing):
                return self.default_factory()
            if not isinstance(self.default, _Missing):
                return self.default
            raise AttributeError(f"Element {self.name} was not found in {element!r}")

        try:
            return self.converter(text.strip())
        except Exception as e:
            raise ValueError(f"Error converting element {self.name} of {element!r}") from e


class Attr(Generic[T]):
    """Data descriptor used to access an attribute of the element."""

    def __init__(
        self,
        name: str,
        /,
        *,
        converter: Optional[Callable[[str], T]] = None,
        default: Union[T, _Missing] = MISSING,
    ) -> None:
        """
        :param name: Name of the attribute.
        :param converter: Optional callable that converts the attribute value from a string to
                          another type.
        :param default: Default value to return if the attribute is not found.
        """
        self.name: str = name
        self.converter: Optional[Callable[[str], T]] = converter
        self.default: Union[T, _Missing] = default

    @overload
    def __get__(self, element: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, element: SvdElement, owner: Optional[Type] = None) -> T:
        ...

    def __get__(
        self, element: Optional[SvdElement], owner: Any = None
    ) -> Union[T, Self]:
        """Get the attribute value from the given binding."""
        if element is None:
            return self

        value = element.node.attribute(self.name)

        if value is None:
            if not isinstance(self.default, _Missing):
                return self.default
            raise AttributeError(f"Attribute {self.name} was not found in {element!r}")

        if self.converter is None:
            return value  # type: ignore

        try:
            return self.converter(value)
        except Exception as e:
            raise ValueError(f"Error converting attribute {self.name} of {element!r}") from e


class Child(Generic[E]):
    """Data descriptor used to access an optional child element as a binding object."""

    def __init__(self, name: str, element_class: Type[E], /) -> None:
        self.name: str = name
        self.element_class: Type[E] = element_class

    @overload
    def __get__(self, element: Literal[None], owner: Optional[Type] = None) -> Self:
        ...

    @overload
    def __get__(self, element: SvdElement, owner: Optional[Type] = None) -> Optional[E]:
        ...

    def __get__(
        self, element: Optional[SvdElement], owner: Any = None
    ) -> Union[Optional[E], Self]:
        if element is None:
            return self

        node = element.find(self.name)
        if node is None:
            return None
        return self.element_class(node, parent=element)
