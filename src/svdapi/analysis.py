# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Access and safety analysis.

For each register the effective access mode is inferred, and for each field the value domain
of each access direction is classified by how well its enumerated values cover the
2^width values representable in the field. The classification decides whether the generated
accessors can be fully represented by the enumeration, and whether raw writes are checked.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterator, Optional, Tuple, Union

import svdapi

from .errors import OutOfRangeError, Scope
from .layout import Padding, PeripheralLayout, RegisterSlot
from .model import Access, Device, EnumeratedValues, Field, Register


@enum.unique
class Coverage(enum.Enum):
    """How well the enumerated values of a field cover its value domain."""

    # No enumerated values; only the raw integer accessor is available.
    RAW = "raw"
    # Some values are not named. Reads need an "unmatched" state, raw writes are unchecked.
    PARTIAL = "partial"
    # Every representable value is named, possibly through a default marker.
    EXHAUSTIVE = "exhaustive"


@enum.unique
class Direction(enum.Enum):
    READ = "read"
    WRITE = "write"


def field_mask(width: int) -> int:
    """Mask of a field of the given width, relative to bit 0."""
    return (1 << width) - 1


def mask_value(value: int, width: int) -> int:
    """Truncate a value to the given width. Excess bits are silently discarded."""
    return value & field_mask(width)


def insert_field(word: int, value: int, bit_offset: int, width: int) -> int:
    """
    Place a field value into a register word.
    The value is masked to the field width, and the bits of the field window in the word are
    replaced by it. Bits outside the window are kept.
    """
    window = field_mask(width) << bit_offset
    return (word & ~window) | (mask_value(value, width) << bit_offset)


def extract_field(word: int, bit_offset: int, width: int) -> int:
    """Extract a field value from a register word."""
    return (word >> bit_offset) & field_mask(width)


def covered_values(
    values: EnumeratedValues, width: int, scope: Scope = ()
) -> FrozenSet[int]:
    """
    Concrete values named by an enumerated value set.

    :raises OutOfRangeError: If a value does not fit in the field width.
    """
    limit = field_mask(width)
    covered = set()

    for enumerated_value in values.values:
        for value in enumerated_value.values:
            if value < 0 or value > limit:
                raise OutOfRangeError(
                    scope + (enumerated_value.name,), "enumerated value", value, limit
                )
            covered.add(value)

    return frozenset(covered)


def is_exhaustive(values: EnumeratedValues, width: int, scope: Scope = ()) -> bool:
    """
    True if the enumerated values name every value representable in a field of the given width.
    A default marker names every value not named explicitly.
    """
    covered = covered_values(values, width, scope)

    if values.default is not None:
        return True
    if width == 1:
        return covered == {0, 1}
    return len(covered) == 1 << width


def classify(
    values: Optional[EnumeratedValues], width: int, scope: Scope = ()
) -> Coverage:
    """Classify the coverage of an (optional) enumerated value set."""
    if values is None or not values.values:
        return Coverage.RAW
    if is_exhaustive(values, width, scope):
        return Coverage.EXHAUSTIVE
    return Coverage.PARTIAL


def infer_register_access(register: Register, default: Optional[Access] = None) -> Access:
    """
    Effective access mode of a register.
    The declared access wins. Otherwise, a register is read-only if all its fields are read-only,
    write-only if all its fields are write-only, and read-write in every other case. A register
    without fields falls back to the inherited default access.
    """
    if register.access is not None:
        return register.access

    if not register.fields:
        return default if default is not None else Access.READ_WRITE

    if all(field.access is Access.READ for field in register.fields):
        return Access.READ
    if all(field.access is Access.WRITE for field in register.fields):
        return Access.WRITE
    return Access.READ_WRITE


def has_access_conflict(register: Register) -> bool:
    """
    True if the register declares an access mode that contradicts the declared access of every
    one of its fields, e.g. a read-only register where every field is write-only.
    """
    if register.access is None or register.access is Access.READ_WRITE or not register.fields:
        return False

    if register.access is Access.READ:
        return all(field.access is Access.WRITE for field in register.fields)
    return all(field.access is Access.READ for field in register.fields)


# Hashable description of an enumerated field accessor, used to deduplicate generated enums.
ShapeKey = Tuple[int, str, str, Tuple[Tuple[str, Tuple[int, ...], bool], ...]]


@dataclass(frozen=True)
class FieldDomain:
    """Value domain of one access direction of a field."""

    direction: Direction
    width: int
    coverage: Coverage
    values: Optional[EnumeratedValues] = None

    # Key shared by domains with identical width, access, direction and values.
    shape: Optional[ShapeKey] = None


@dataclass(frozen=True)
class AnalyzedField:
    field: Field

    # Effective access, either declared on the field or inherited from the register.
    access: Access

    # Value of the field after reset.
    reset_value: int

    # Read domain, if the field is readable.
    read: Optional[FieldDomain]

    # Write domain, if the field is writable.
    write: Optional[FieldDomain]

    # True if writing any raw value that fits in the field is safe.
    raw_write_safe: bool

    @property
    def name(self) -> str:
        return self.field.name


@dataclass(frozen=True)
class AnalyzedRegister:
    slot: RegisterSlot
    access: Access
    fields: Tuple[AnalyzedField, ...]

    @property
    def register(self) -> Register:
        return self.slot.register

    @property
    def readable_fields(self) -> Iterator[AnalyzedField]:
        return (f for f in self.fields if f.read is not None)

    @property
    def writable_fields(self) -> Iterator[AnalyzedField]:
        return (f for f in self.fields if f.write is not None)


@dataclass(frozen=True)
class AnalyzedPeripheral:
    layout: PeripheralLayout
    registers: Tuple[AnalyzedRegister, ...]

    @property
    def items(self) -> Iterator[Union[AnalyzedRegister, Padding]]:
        """Analyzed registers and padding in address order."""
        registers = iter(self.registers)
        for item in self.layout.items:
            if isinstance(item, Padding):
                yield item
            else:
                yield next(registers)


@dataclass(frozen=True)
class AnalyzedDevice:
    device: Device
    peripherals: Tuple[AnalyzedPeripheral, ...]


def analyze_peripheral(
    layout: PeripheralLayout, warn_on_access_conflict: bool = True
) -> AnalyzedPeripheral:
    """
    Analyze the registers of a peripheral.

    :param layout: Layout of the peripheral.
    :param warn_on_access_conflict: Log a warning when the register and field access modes
                                    contradict each other.

    :raises OutOfRangeError: If an enumerated value does not fit in its field.

    :return: Analyzed peripheral.
    """
    peripheral = layout.peripheral
    registers = []

    for slot in layout.slots:
        register = slot.register
        scope: Scope = (peripheral.name, register.name)
        access = infer_register_access(register, peripheral.defaults.access)

        if warn_on_access_conflict and has_access_conflict(register):
            svdapi.log.warning(
                f"{'.'.join(scope)}: register is declared {access.value} but all of its fields "
                "have the opposite access; the register access is used for the register "
                "accessors and the field access for the field accessors"
            )

        fields = tuple(
            analyze_field(field, register, access, scope + (field.name,))
            for field in sorted(register.fields, key=lambda f: f.bit_offset)
        )
        registers.append(AnalyzedRegister(slot=slot, access=access, fields=fields))

    return AnalyzedPeripheral(layout=layout, registers=tuple(registers))


def analyze_field(
    field: Field, register: Register, register_access: Access, scope: Scope
) -> AnalyzedField:
    """Analyze the access and value domains of a field."""
    access = field.access if field.access is not None else register_access
    reset_value = extract_field(
        register.reset_value & register.reset_mask, field.bit_offset, field.bit_width
    )

    read = (
        _domain(field, field.read_values, Direction.READ, access, scope)
        if access.readable
        else None
    )
    write = (
        _domain(field, field.write_values, Direction.WRITE, access, scope)
        if access.writable
        else None
    )

    return AnalyzedField(
        field=field,
        access=access,
        reset_value=reset_value,
        read=read,
        write=write,
        raw_write_safe=write is not None and _raw_write_safe(field, write),
    )


def _domain(
    field: Field,
    values: Optional[EnumeratedValues],
    direction: Direction,
    access: Access,
    scope: Scope,
) -> FieldDomain:
    coverage = classify(values, field.bit_width, scope)
    if values is None or coverage is Coverage.RAW:
        return FieldDomain(direction=direction, width=field.bit_width, coverage=coverage)

    _warn_on_aliased_values(values, scope)

    shape: ShapeKey = (
        field.bit_width,
        access.value,
        direction.value,
        tuple((v.name, v.values, v.is_default) for v in values.values),
    )

    return FieldDomain(
        direction=direction,
        width=field.bit_width,
        coverage=coverage,
        values=values,
        shape=shape,
    )


def _raw_write_safe(field: Field, write: FieldDomain) -> bool:
    if write.coverage is Coverage.EXHAUSTIVE:
        return True

    write_range = field.write_range
    return (
        write_range is not None
        and write_range.minimum <= 0
        and write_range.maximum >= field_mask(field.bit_width)
    )


def _warn_on_aliased_values(values: EnumeratedValues, scope: Scope) -> None:
    owners: Dict[int, str] = {}
    for enumerated_value in values.values:
        for value in enumerated_value.values:
            if (owner := owners.get(value)) is not None:
                svdapi.log.warning(
                    f"{'.'.join(scope)}: value {value:#x} is named by both '{owner}' and "
                    f"'{enumerated_value.name}'; '{owner}' is used when decoding"
                )
            else:
                owners[value] = enumerated_value.name
