# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Output tree of the generator.

The types in this module describe the typed peripheral API of a device independently of the
language it is eventually rendered in. Renderers only ever traverse the tree; it is never
modified after it has been emitted.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple, Union

from .analysis import Coverage, Direction
from .model import Access, Cpu, Field, Register


@enum.unique
class AccessorShape(enum.Enum):
    """Operations exposed by the accessor of a register."""

    READ = "read"
    WRITE = "write"
    READ_WRITE = "read-write"

    @classmethod
    def from_access(cls, access: Access) -> AccessorShape:
        return cls(access.value)

    @property
    def has_read(self) -> bool:
        return self is not AccessorShape.WRITE

    @property
    def has_write(self) -> bool:
        return self is not AccessorShape.READ

    @property
    def has_modify(self) -> bool:
        """A single read-modify-write is only possible on a register that is read-write."""
        return self is AccessorShape.READ_WRITE


@enum.unique
class RawKind(enum.Enum):
    """Kind of raw accessor of a field."""

    # Single bit, accessed as a boolean
    BIT = "bit"
    # Multiple bits, accessed as an unsigned integer
    BITS = "bits"

    @classmethod
    def for_width(cls, width: int) -> RawKind:
        return cls.BIT if width == 1 else cls.BITS


@dataclass(frozen=True)
class EnumVariant:
    name: str
    values: Tuple[int, ...]
    is_default: bool = False
    description: Optional[str] = None


@dataclass(frozen=True)
class EnumShape:
    """Enumerated type shared by one or more field accessors."""

    # Position of the shape in ApiDevice.enum_shapes
    index: int

    # Name hint for the generated type; the name of the field that first used the shape.
    name: str

    # (block owner, register, field) of the field that first used the shape.
    owner: Tuple[str, str, str]

    direction: Direction
    width: int
    coverage: Coverage
    variants: Tuple[EnumVariant, ...]

    @property
    def is_exhaustive(self) -> bool:
        return self.coverage is Coverage.EXHAUSTIVE

    @property
    def default(self) -> Optional[EnumVariant]:
        return next((v for v in self.variants if v.is_default), None)

    def decode(self, value: int) -> Optional[EnumVariant]:
        """
        Variant matching a raw field value.
        Explicitly named values are matched before the default marker. None is returned for the
        "unmatched" state of a partial enumeration.
        """
        for variant in self.variants:
            if value in variant.values:
                return variant
        return self.default

    def encode(self, name: str) -> int:
        """
        Raw value written for a variant.

        :raises KeyError: If the shape has no variant with the name, or the variant is a default
                          marker without a concrete value.
        """
        for variant in self.variants:
            if variant.name == name and variant.values:
                return variant.values[0]
        raise KeyError(name)


@dataclass(frozen=True)
class FieldReader:
    name: str
    bit_offset: int
    width: int
    raw_kind: RawKind
    reset_value: int

    enum: Optional[EnumShape] = None

    # True if the read value may match no variant of the enum.
    has_unmatched: bool = False

    description: Optional[str] = None

    # Source field in the model.
    field: Optional[Field] = None

    @property
    def mask(self) -> int:
        return ((1 << self.width) - 1) << self.bit_offset


@dataclass(frozen=True)
class FieldWriter:
    name: str
    bit_offset: int
    width: int
    raw_kind: RawKind
    reset_value: int

    enum: Optional[EnumShape] = None

    # True if any raw value is safe to write. Otherwise the raw write is an unchecked operation.
    raw_write_safe: bool = False

    description: Optional[str] = None

    field: Optional[Field] = None

    @property
    def mask(self) -> int:
        return ((1 << self.width) - 1) << self.bit_offset


@dataclass(frozen=True)
class RegisterAccessor:
    name: str

    # Byte offset relative to the start of the register block.
    offset: int

    bit_width: int
    shape: AccessorShape
    reset_value: int
    reset_mask: int
    readers: Tuple[FieldReader, ...] = ()
    writers: Tuple[FieldWriter, ...] = ()
    description: Optional[str] = None

    # Source register in the model.
    register: Optional[Register] = None

    @property
    def byte_width(self) -> int:
        return (self.bit_width + 7) // 8


@dataclass(frozen=True)
class PaddingSlot:
    """Reserved bytes in a register block."""

    offset: int
    size: int


BlockItem = Union[RegisterAccessor, PaddingSlot]


@dataclass(frozen=True)
class RegisterBlock:
    """Contiguous layout of the registers of a peripheral, starting at its base address."""

    # Name of the first peripheral using the block.
    owner: str

    items: Tuple[BlockItem, ...]
    size: int

    @property
    def accessors(self) -> Iterator[RegisterAccessor]:
        return (item for item in self.items if isinstance(item, RegisterAccessor))

    @property
    def padding(self) -> Iterator[PaddingSlot]:
        return (item for item in self.items if isinstance(item, PaddingSlot))

    def accessor(self, name: str) -> RegisterAccessor:
        for accessor in self.accessors:
            if accessor.name == name:
                return accessor
        raise KeyError(name)


@dataclass(frozen=True)
class PeripheralSingleton:
    """Take-once handle to a peripheral instance."""

    name: str
    base_address: int

    # Owner of the register block of the peripheral.
    block_of: str

    description: Optional[str] = None
    group_name: Optional[str] = None

    @property
    def shares_block(self) -> bool:
        """True if the register block is declared by another peripheral."""
        return self.block_of != self.name


@dataclass(frozen=True)
class InterruptVariant:
    name: str
    value: int
    description: Optional[str] = None
    peripheral: Optional[str] = None


@dataclass(frozen=True)
class InterruptTable:
    """Device interrupts in ascending vector number order."""

    interrupts: Tuple[InterruptVariant, ...] = ()

    def __iter__(self) -> Iterator[InterruptVariant]:
        return iter(self.interrupts)

    def __len__(self) -> int:
        return len(self.interrupts)

    @property
    def num_vectors(self) -> int:
        """Number of vector slots needed to hold the highest interrupt number."""
        return self.interrupts[-1].value + 1 if self.interrupts else 0

    def vector_slots(self) -> List[Optional[InterruptVariant]]:
        """Vector table with reserved slots as None."""
        slots: List[Optional[InterruptVariant]] = [None] * self.num_vectors
        for interrupt in self.interrupts:
            slots[interrupt.value] = interrupt
        return slots


@dataclass(frozen=True)
class ApiDevice:
    """Root of the output tree."""

    name: str
    peripherals: Tuple[PeripheralSingleton, ...]
    blocks: Tuple[RegisterBlock, ...]
    enum_shapes: Tuple[EnumShape, ...]
    interrupts: InterruptTable
    description: Optional[str] = None
    cpu: Optional[Cpu] = None

    def iter_peripherals(self) -> Iterator[PeripheralSingleton]:
        return iter(self.peripherals)

    def peripheral(self, name: str) -> PeripheralSingleton:
        for peripheral in self.peripherals:
            if peripheral.name == name:
                return peripheral
        raise KeyError(name)

    def block(self, peripheral: Union[str, PeripheralSingleton]) -> RegisterBlock:
        """Register block of a peripheral."""
        if isinstance(peripheral, str):
            peripheral = self.peripheral(peripheral)
        for block in self.blocks:
            if block.owner == peripheral.block_of:
                return block
        raise KeyError(peripheral.block_of)

    def iter_items(self, peripheral: Union[str, PeripheralSingleton]) -> Iterator[BlockItem]:
        """Registers and padding of a peripheral in address order."""
        return iter(self.block(peripheral).items)

    def iter_registers(
        self, peripheral: Union[str, PeripheralSingleton]
    ) -> Iterator[RegisterAccessor]:
        return self.block(peripheral).accessors

    def iter_interrupts(self) -> Iterator[InterruptVariant]:
        return iter(self.interrupts)

    def address_of(self, peripheral: str, register: str) -> int:
        """Absolute address of a register of a peripheral."""
        singleton = self.peripheral(peripheral)
        return singleton.base_address + self.block(singleton).accessor(register).offset
