# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Semantic model of a device.

The model is a tree of immutable values: Device -> Peripheral -> Register -> Field ->
EnumeratedValues -> EnumeratedValue, plus the flat Interrupt table of the device.
Each processing stage takes a model and returns a new, more constrained model; nothing is ever
modified in place.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple


@enum.unique
class Access(enum.Enum):
    """Effective access mode of a register or field."""

    READ = "read"
    WRITE = "write"
    READ_WRITE = "read-write"

    @property
    def readable(self) -> bool:
        return self is not Access.WRITE

    @property
    def writable(self) -> bool:
        return self is not Access.READ


@dataclass(frozen=True)
class EnumeratedValue:
    """Named alias for one or more concrete values of a field."""

    name: str

    # Concrete values matched by this name. Empty for a default marker without a value.
    values: Tuple[int, ...] = ()

    # If True, the name also matches every value that no other name in the set matches.
    is_default: bool = False

    description: Optional[str] = None


@dataclass(frozen=True)
class EnumeratedValues:
    """Ordered set of enumerated values that applies to one access direction of a field."""

    values: Tuple[EnumeratedValue, ...] = ()

    name: Optional[str] = None

    # Reference to another enumerated value set. Cleared by the derivation resolver.
    derived_from: Optional[str] = None

    @property
    def default(self) -> Optional[EnumeratedValue]:
        """The default marker of the set, if any."""
        return next((v for v in self.values if v.is_default), None)


@dataclass(frozen=True)
class WriteRange:
    """Inclusive range of values permitted to be written to a field."""

    minimum: int
    maximum: int


@dataclass(frozen=True)
class Field:
    """Named bit range within a register."""

    name: str
    bit_offset: int
    bit_width: int

    # Declared access. None means the access is inherited from the register.
    access: Optional[Access] = None

    read_values: Optional[EnumeratedValues] = None
    write_values: Optional[EnumeratedValues] = None

    write_range: Optional[WriteRange] = None

    description: Optional[str] = None

    @property
    def mask(self) -> int:
        """Bitmask of the field, relative to bit 0 of the register."""
        return ((1 << self.bit_width) - 1) << self.bit_offset

    @property
    def bit_end(self) -> int:
        """One past the most significant bit of the field."""
        return self.bit_offset + self.bit_width


@dataclass(frozen=True)
class Register:
    """Fixed-width register located at an offset from the peripheral base address."""

    name: str

    # Byte offset from the peripheral base address.
    offset: int

    bit_width: int

    # Declared access. None means the access is inferred from the fields.
    access: Optional[Access] = None

    reset_value: int = 0
    reset_mask: int = 0xFFFF_FFFF

    fields: Tuple[Field, ...] = ()

    description: Optional[str] = None

    @property
    def byte_width(self) -> int:
        """Number of bytes occupied by the register."""
        return (self.bit_width + 7) // 8

    @property
    def offset_range(self) -> range:
        """Range of byte offsets occupied by the register."""
        return range(self.offset, self.offset + self.byte_width)

    def field(self, name: str) -> Field:
        """Look up a field by name."""
        for field in self.fields:
            if field.name == name:
                return field
        raise KeyError(name)


@dataclass(frozen=True)
class RegisterDefaults:
    """Register properties inherited from the device or peripheral level."""

    size: int = 32
    access: Optional[Access] = None
    reset_value: int = 0
    reset_mask: int = 0xFFFF_FFFF


@dataclass(frozen=True)
class Peripheral:
    """Memory mapped hardware unit with one register block."""

    name: str
    base_address: int
    registers: Tuple[Register, ...] = ()

    # Name of the peripheral this one is derived from. Cleared by the derivation resolver.
    derived_from: Optional[str] = None

    # Size in bytes of the address block reserved for the peripheral, if declared.
    address_block_size: Optional[int] = None

    # Register properties declared on the peripheral (or inherited from the device).
    defaults: RegisterDefaults = RegisterDefaults()

    # Names of the RegisterDefaults properties given on the peripheral element itself.
    declared_properties: Tuple[str, ...] = ()

    description: Optional[str] = None
    group_name: Optional[str] = None

    def register(self, name: str) -> Register:
        """Look up a register by name."""
        for register in self.registers:
            if register.name == name:
                return register
        raise KeyError(name)


@dataclass(frozen=True)
class Interrupt:
    """Entry in the device interrupt table."""

    name: str
    value: int
    description: Optional[str] = None

    # Name of the peripheral that first declared the interrupt.
    peripheral: Optional[str] = None


@dataclass(frozen=True)
class Cpu:
    """Processor information relevant to the generated API."""

    name: str
    revision: Optional[str] = None
    num_nvic_priority_bits: Optional[int] = None
    has_fpu: Optional[bool] = None
    has_mpu: Optional[bool] = None
    has_vendor_systick: bool = False


@dataclass(frozen=True)
class Device:
    """Root of the model."""

    name: str
    peripherals: Tuple[Peripheral, ...] = ()
    interrupts: Tuple[Interrupt, ...] = ()
    defaults: RegisterDefaults = RegisterDefaults()
    description: Optional[str] = None
    cpu: Optional[Cpu] = None

    def peripheral(self, name: str) -> Peripheral:
        """Look up a peripheral by name."""
        for peripheral in self.peripherals:
            if peripheral.name == name:
                return peripheral
        raise KeyError(name)
