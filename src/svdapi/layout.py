# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Layout engine: orders the registers of each peripheral by address, validates that registers
and fields do not overlap, and computes the padding between registers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Tuple, Union

import svdapi

from .errors import OutOfRangeError, OverlapError, Scope
from .model import Device, Peripheral, Register


@dataclass(frozen=True)
class RegisterSlot:
    """Register placed in the register block of a peripheral."""

    register: Register

    # Absolute address of the register.
    address: int

    @property
    def offset(self) -> int:
        return self.register.offset

    @property
    def size(self) -> int:
        return self.register.byte_width


@dataclass(frozen=True)
class Padding:
    """Reserved, undecoded byte range between two registers."""

    offset: int
    size: int


LayoutItem = Union[RegisterSlot, Padding]


@dataclass(frozen=True)
class PeripheralLayout:
    """Register block of a peripheral in address order."""

    peripheral: Peripheral
    items: Tuple[LayoutItem, ...]

    @property
    def slots(self) -> Iterator[RegisterSlot]:
        """Register slots in address order."""
        return (item for item in self.items if isinstance(item, RegisterSlot))

    @property
    def size(self) -> int:
        """Number of bytes spanned by the register block, starting at the base address."""
        if not self.items:
            return 0
        last = self.items[-1]
        return last.offset + last.size


@dataclass(frozen=True)
class DeviceLayout:
    device: Device
    peripherals: Tuple[PeripheralLayout, ...]


def layout_peripheral(peripheral: Peripheral) -> PeripheralLayout:
    """
    Compute the register block layout of a resolved peripheral.

    :param peripheral: Peripheral without 'derivedFrom' reference.

    :raises OverlapError: If two registers, or two fields of a register, overlap.
    :raises OutOfRangeError: If a field does not fit in its register.

    :return: Layout of the peripheral.
    """
    scope: Scope = (peripheral.name,)

    for register in peripheral.registers:
        validate_fields(register, scope + (register.name,))

    registers = sorted(peripheral.registers, key=lambda r: r.offset)
    items: List[LayoutItem] = []
    cursor = 0

    for i, register in enumerate(registers):
        if register.offset < cursor:
            previous = registers[i - 1]
            raise OverlapError(
                scope,
                (previous.name, previous.offset, previous.offset + previous.byte_width),
                (register.name, register.offset, register.offset + register.byte_width),
            )
        if register.offset > cursor:
            items.append(Padding(offset=cursor, size=register.offset - cursor))

        items.append(
            RegisterSlot(register=register, address=peripheral.base_address + register.offset)
        )
        cursor = register.offset + register.byte_width

    if peripheral.address_block_size is not None and cursor > peripheral.address_block_size:
        svdapi.log.warning(
            f"{peripheral.name}: registers extend to offset {cursor:#x}, beyond the "
            f"address block size {peripheral.address_block_size:#x}"
        )

    return PeripheralLayout(peripheral=peripheral, items=tuple(items))


def validate_fields(register: Register, scope: Scope) -> None:
    """
    Check that every field fits in the register and that no two fields overlap.

    :raises OutOfRangeError: If a field extends beyond the register width.
    :raises OverlapError: If two fields share a bit.
    """
    for field in register.fields:
        if field.bit_end > register.bit_width:
            raise OutOfRangeError(
                scope + (field.name,), "field end bit", field.bit_end, register.bit_width
            )

    fields = sorted(register.fields, key=lambda f: f.bit_offset)
    for f1, f2 in zip(fields, fields[1:]):
        if f1.bit_end > f2.bit_offset:
            raise OverlapError(
                scope,
                (f1.name, f1.bit_offset, f1.bit_end),
                (f2.name, f2.bit_offset, f2.bit_end),
                unit="bit",
            )
