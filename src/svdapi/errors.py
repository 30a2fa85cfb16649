# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from typing import Iterable, Optional, Sequence, Tuple

# Names of the enclosing elements of a definition, outermost first.
# For example ("GPIOA", "MODER") is the scope of the fields in register MODER of GPIOA.
Scope = Tuple[str, ...]


def format_scope(scope: Iterable[str]) -> str:
    """Format a scope as a dotted path, or '<device>' for the top-level scope."""
    path = ".".join(scope)
    return path if path else "<device>"


class SvdError(Exception):
    """Base class for errors raised by the library."""

    ...


class SvdParseError(SvdError):
    """Raised when an error occurs during SVD parsing."""

    ...


class SvdDefinitionError(SvdError, ValueError):
    """Raised when unrecoverable errors occur due to an invalid definition in the SVD file."""

    def __init__(self, scope: Sequence[str], explanation: str):
        self.scope: Scope = tuple(scope)
        self.explanation: str = explanation
        super().__init__(f"Invalid SVD definition in {format_scope(self.scope)}: {explanation}")


class DuplicateNameError(SvdDefinitionError):
    """Raised when a name is reused in a scope that requires unique names."""

    def __init__(self, scope: Sequence[str], name: str, kind: str = "element"):
        self.name: str = name
        self.kind: str = kind
        super().__init__(scope, f"{kind} name '{name}' is defined more than once")


class CyclicDerivationError(SvdDefinitionError):
    """Raised when a chain of 'derivedFrom' references revisits an element."""

    def __init__(self, cycle: Sequence[str], scope: Sequence[str] = ()):
        self.cycle: Tuple[str, ...] = tuple(cycle)
        super().__init__(scope, f"cyclic derivation: {' -> '.join(self.cycle)}")


class UnresolvedReferenceError(SvdDefinitionError):
    """Raised when a 'derivedFrom' reference names an element that does not exist."""

    def __init__(self, scope: Sequence[str], reference: str, kind: str = "element"):
        self.reference: str = reference
        self.kind: str = kind
        super().__init__(scope, f"reference to nonexistent {kind} '{reference}'")


class OverlapError(SvdDefinitionError):
    """Raised when two registers or two fields claim overlapping byte/bit ranges."""

    def __init__(
        self,
        scope: Sequence[str],
        first: Tuple[str, int, int],
        second: Tuple[str, int, int],
        unit: str = "byte",
    ):
        """
        :param scope: Scope containing the overlapping elements.
        :param first: Tuple of (name, start, end) of the first element. The end is exclusive.
        :param second: Tuple of (name, start, end) of the second element.
        :param unit: Unit of the ranges, "byte" or "bit".
        """
        self.first = first
        self.second = second
        self.unit = unit
        first_str = f'"{first[0]}" ({first[1]:#x}-{first[2]:#x})'
        second_str = f'"{second[0]}" ({second[1]:#x}-{second[2]:#x})'
        super().__init__(scope, f"{unit} ranges of {first_str} and {second_str} overlap")


class OutOfRangeError(SvdDefinitionError):
    """Raised when a value or bit width exceeds what its field/register can represent."""

    def __init__(
        self,
        scope: Sequence[str],
        what: str,
        value: int,
        limit: Optional[int] = None,
    ):
        self.what: str = what
        self.value: int = value
        self.limit: Optional[int] = limit
        limit_str = f" (limit {limit:#x})" if limit is not None else ""
        super().__init__(scope, f"{what} {value:#x} is out of range{limit_str}")


class DuplicateInterruptNumberError(SvdDefinitionError):
    """Raised when two interrupts claim the same vector number."""

    def __init__(self, value: int, first: str, second: str):
        self.value: int = value
        self.names: Tuple[str, str] = (first, second)
        super().__init__(
            (), f"interrupts '{first}' and '{second}' both use vector number {value}"
        )
