# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
"Low-level" read-only Python representation of the parts of the SVD format used by the
generator. Each type of element in the SVD tree is represented by a class in this module.
The class properties correspond more or less directly to the XML elements/attributes,
with some abstractions and simplifications added for convenience.

The bindings operate on the minimal tree interface in the tree module, so they are independent
of the library used to parse the document.

Based on CMSIS-SVD schema v1.3.9.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Tuple

from ._bindings import (
    Attr,
    CaseInsensitiveStrEnum,
    Child,
    Elem,
    SvdElement,
    expand_int_pattern,
    to_bool,
    to_int,
    to_name,
    to_text,
)


@enum.unique
class SvdAccess(CaseInsensitiveStrEnum):
    """
    Access rights for a given register or field.
    See "accessType" in the SVD schema.
    """

    # Read access is permitted. Write operations have an undefined result.
    READ_ONLY = "read-only"
    # Write access is permitted. Read operations have an undefined result.
    WRITE_ONLY = "write-only"
    # Read and write accesses are permitted.
    READ_WRITE = "read-write"
    # Only the first write after reset has an effect. Read operations have an undefined results.
    WRITE_ONCE = "writeOnce"
    # Only the first write after reset has an effect. Read access is permitted.
    READ_WRITE_ONCE = "read-writeOnce"


@enum.unique
class EnumUsage(CaseInsensitiveStrEnum):
    """
    Usage of an enumerated value.
    See "enumUsageType" in the SVD schema.
    """

    # The value is relevant for read operations.
    READ = "read"
    # The value is relevant for write operations.
    WRITE = "write"
    # The value is relevant for read and write operations.
    READ_WRITE = "read-write"


class RangeWriteConstraint(SvdElement):
    """Value range constraint for a register or field."""

    TAG: str = "range"

    __slots__ = ()

    # Minimum permitted value
    minimum: Elem[int] = Elem("minimum", to_int)

    # Maximum permitted value
    maximum: Elem[int] = Elem("maximum", to_int)


class WriteConstraintElement(SvdElement):
    """Constraint on permitted values in a register or field."""

    TAG: str = "writeConstraint"

    __slots__ = ()

    # Value range constraint
    value_range: Child[RangeWriteConstraint] = Child("range", RangeWriteConstraint)


class AddressBlock(SvdElement):
    """Address range mapped to a peripheral."""

    TAG: str = "addressBlock"

    __slots__ = ()

    # Start address of the address block, relative to the peripheral base address.
    offset: Elem[int] = Elem("offset", to_int)

    # Number of address units covered by the address block.
    size: Elem[int] = Elem("size", to_int)


class DerivedMixin(SvdElement):
    """Common functionality for elements that contain a SVD 'derivedFrom' attribute."""

    __slots__ = ()

    # Name of the element that this element is derived from.
    derived_from: Attr[Optional[str]] = Attr("derivedFrom", converter=to_name, default=None)

    @property
    def is_derived(self) -> bool:
        """Return True if the element is derived from another element."""
        return self.derived_from is not None


class NamedMixin(SvdElement):
    """Common functionality for elements with a name and a description."""

    __slots__ = ()

    # Name of the element.
    name: Elem[str] = Elem("name", to_name)

    # Description of the element.
    description: Elem[Optional[str]] = Elem("description", to_text, default=None)

    def __repr__(self) -> str:
        try:
            name = self.name
        except Exception:
            name = None

        return super()._repr(props={"name": name})


class EnumeratedValueElement(NamedMixin):
    """Value definition for a field."""

    TAG: str = "enumeratedValue"

    __slots__ = ()

    # Integers matched by the enumerated value. Values given as bit patterns with don't-care
    # digits are expanded to every integer they match. Empty if no value is given.
    values: Elem[Tuple[int, ...]] = Elem("value", expand_int_pattern, default=())

    # True if the enumerated value matches every value not matched by another enumerated value.
    is_default: Elem[bool] = Elem("isDefault", to_bool, default=False)


class EnumerationElement(DerivedMixin):
    """Container for enumerated values."""

    TAG: str = "enumeratedValues"

    __slots__ = ()

    # Name of the enumeration.
    name: Elem[Optional[str]] = Elem("name", to_name, default=None)

    # Description of which types of operations the enumeration is used for.
    usage: Elem[EnumUsage] = Elem("usage", EnumUsage, default=EnumUsage.READ_WRITE)

    @property
    def enums(self) -> Iterator[EnumeratedValueElement]:
        """Iterate over all enumerated values."""
        return self.iter_children(EnumeratedValueElement)

    def __repr__(self) -> str:
        return super()._repr(props={"name": self.name, "usage": self.usage.value})


class InterruptElement(NamedMixin):
    """Peripheral interrupt description."""

    TAG: str = "interrupt"

    __slots__ = ()

    # Interrupt number.
    value: Elem[int] = Elem("value", to_int)


class BitRange(NamedTuple):
    """Bit range of a field."""

    # Bit offset of the field.
    offset: int

    # Bit width of the field.
    width: int


class FieldElement(NamedMixin, DerivedMixin):
    """SVD field element."""

    TAG: str = "field"

    __slots__ = ()

    # Access rights of the field.
    access: Elem[Optional[SvdAccess]] = Elem("access", SvdAccess, default=None)

    # Constraints on writing to the field.
    write_constraint: Child[WriteConstraintElement] = Child(
        "writeConstraint", WriteConstraintElement
    )

    @property
    def enumerations(self) -> Iterator[EnumerationElement]:
        """Iterate over the enumerated value containers of the field (at most one per usage)."""
        return self.iter_children(EnumerationElement)

    @property
    def bit_range(self) -> BitRange:
        """
        Bit range of the field.
        :return: Tuple of the field's bit offset and bit width.
        """

        if self._lsb is not None and self._msb is not None:
            return BitRange(offset=self._lsb, width=self._msb - self._lsb + 1)

        if self._bit_offset is not None:
            width = self._bit_width if self._bit_width is not None else 32
            return BitRange(offset=self._bit_offset, width=width)

        if self._bit_range is not None:
            msb_string, lsb_string = self._bit_range.strip()[1:-1].split(":")
            msb, lsb = to_int(msb_string), to_int(lsb_string)
            return BitRange(offset=lsb, width=msb - lsb + 1)

        return BitRange(offset=0, width=32)

    # (internal) Least significant bit of the field, if specified in the bitRangeLsbMsbStyle style.
    _lsb: Elem[Optional[int]] = Elem("lsb", to_int, default=None)

    # (internal) Most significant bit of the field, if specified in the bitRangeLsbMsbStyle style.
    _msb: Elem[Optional[int]] = Elem("msb", to_int, default=None)

    # (internal) Bit offset of the field, if specified in the bitRangeOffsetWidthStyle style.
    _bit_offset: Elem[Optional[int]] = Elem("bitOffset", to_int, default=None)

    # (internal) Bit width of the field, if specified in the bitRangeOffsetWidthStyle style.
    _bit_width: Elem[Optional[int]] = Elem("bitWidth", to_int, default=None)

    # (internal) Bit range of the field, given in the form "[msb:lsb]", if specified in the
    # bitRangePattern style.
    _bit_range: Elem[Optional[str]] = Elem("bitRange", str, default=None)


@dataclass(frozen=True)
class RegisterProperties:
    """Common SVD device/peripheral/register level properties."""

    # Size of the register in bits.
    size: Optional[int]

    # Access rights of the register.
    access: Optional[SvdAccess]

    # Reset value of the register.
    reset_value: Optional[int]

    # Reset mask of the register.
    reset_mask: Optional[int]


class RegisterPropertiesGroupMixin(SvdElement):
    """Common functionality for elements that contain a SVD 'registerPropertiesGroup'."""

    __slots__ = ()

    @property
    def register_properties(self) -> RegisterProperties:
        """Register properties specified in the element itself."""
        return self.get_register_properties()

    def get_register_properties(
        self, base_props: Optional[RegisterProperties] = None
    ) -> RegisterProperties:
        """
        Get the register properties of the element, optionally inheriting from a
        base set of properties.
        """
        own = RegisterProperties(
            size=self._size,
            access=self._access,
            reset_value=self._reset_value,
            reset_mask=self._reset_mask,
        )
        if base_props is None:
            return own

        return RegisterProperties(
            size=own.size if own.size is not None else base_props.size,
            access=own.access if own.access is not None else base_props.access,
            reset_value=(
                own.reset_value if own.reset_value is not None else base_props.reset_value
            ),
            reset_mask=(
                own.reset_mask if own.reset_mask is not None else base_props.reset_mask
            ),
        )

    _size: Elem[Optional[int]] = Elem("size", to_int, default=None)
    _access: Elem[Optional[SvdAccess]] = Elem("access", SvdAccess, default=None)
    _reset_value: Elem[Optional[int]] = Elem("resetValue", to_int, default=None)
    _reset_mask: Elem[Optional[int]] = Elem("resetMask", to_int, default=None)


@dataclass(frozen=True)
class Dimensions:
    """Dimensions of a repeated SVD element."""

    # Number of times the element is repeated.
    length: int

    # Increment between each element.
    step: int

    # Raw dimIndex value, if given.
    index_spec: Optional[str] = None

    def to_range(self) -> range:
        """Convert to a range of offsets"""
        return range(0, (self.length - 1) * self.step + 1, self.step)

    def indices(self) -> List[str]:
        """
        Strings substituted for '%s' in the names of the repeated elements.
        Supports the "0-3", "A-D" and "A,B,C" forms of dimIndex, and defaults to "0".."length-1".
        """
        if self.index_spec is None:
            return [str(i) for i in range(self.length)]

        spec = self.index_spec.strip()

        if (match := re.fullmatch(r"(\d+)\s*-\s*(\d+)", spec)) is not None:
            start, end = int(match[1]), int(match[2])
            indices = [str(i) for i in range(start, end + 1)]
        elif (match := re.fullmatch(r"([A-Z])\s*-\s*([A-Z])", spec)) is not None:
            indices = [chr(c) for c in range(ord(match[1]), ord(match[2]) + 1)]
        else:
            indices = [part.strip() for part in spec.split(",")]

        if len(indices) != self.length:
            raise ValueError(
                f"dimIndex '{self.index_spec}' has {len(indices)} entries, expected {self.length}"
            )

        return indices


class DimElementGroupMixin(SvdElement):
    """Common functionality for elements that contain a SVD 'dimElementGroup'."""

    __slots__ = ()

    @property
    def dimensions(self) -> Optional[Dimensions]:
        """Get the dimensions of the element, if it is repeated."""
        if self._dim is None or self._dim_increment is None:
            return None

        return Dimensions(
            length=self._dim,
            step=self._dim_increment,
            index_spec=self._dim_index,
        )

    _dim: Elem[Optional[int]] = Elem("dim", to_int, default=None)
    _dim_increment: Elem[Optional[int]] = Elem("dimIncrement", to_int, default=None)
    _dim_index: Elem[Optional[str]] = Elem("dimIndex", str, default=None)


class RegisterElement(
    NamedMixin,
    DimElementGroupMixin,
    RegisterPropertiesGroupMixin,
    DerivedMixin,
):
    """SVD register element."""

    TAG: str = "register"

    __slots__ = ()

    # Address offset of the register, relative to the peripheral base address.
    offset: Elem[int] = Elem("addressOffset", to_int)

    @property
    def fields(self) -> Iterator[FieldElement]:
        """Iterator over the fields of the register."""
        return self.iter_children(FieldElement, container="fields")


class ClusterElement(NamedMixin):
    """SVD cluster element. Only recognized so that it can be reported as unsupported."""

    TAG: str = "cluster"

    __slots__ = ()


class CpuElement(SvdElement):
    """Description of the device processor."""

    TAG: str = "cpu"

    __slots__ = ()

    # CPU name, such as "CM4".
    name: Elem[str] = Elem("name", to_name)

    # CPU hardware revision with the format "rNpM".
    revision: Elem[Optional[str]] = Elem("revision", to_name, default=None)

    # True if the CPU has a memory protection unit (MPU).
    has_mpu: Elem[Optional[bool]] = Elem("mpuPresent", to_bool, default=None)

    # True if the CPU has a floating point unit (FPU).
    has_fpu: Elem[Optional[bool]] = Elem("fpuPresent", to_bool, default=None)

    # Bit width of interrupt priority levels in the Nested Vectored Interrupt Controller (NVIC).
    num_nvic_priority_bits: Elem[Optional[int]] = Elem("nvicPrioBits", to_int, default=None)

    # True if the CPU has a vendor-specific SysTick Timer.
    has_vendor_systick: Elem[bool] = Elem("vendorSystickConfig", to_bool, default=False)


class PeripheralElement(
    NamedMixin,
    RegisterPropertiesGroupMixin,
    DerivedMixin,
):
    """SVD peripheral element."""

    TAG: str = "peripheral"

    __slots__ = ()

    # Base address of the peripheral.
    base_address: Elem[int] = Elem("baseAddress", to_int)

    # Name of the group that the peripheral belongs to.
    group_name: Elem[Optional[str]] = Elem("groupName", to_name, default=None)

    @property
    def interrupts(self) -> Iterator[InterruptElement]:
        """Iterator over the interrupts of the peripheral."""
        return self.iter_children(InterruptElement)

    @property
    def address_blocks(self) -> Iterator[AddressBlock]:
        """Iterator over the address blocks of the peripheral."""
        return self.iter_children(AddressBlock)

    @property
    def registers(self) -> Iterator[RegisterElement]:
        """Iterator over the registers that are direct children of this peripheral."""
        return self.iter_children(RegisterElement, container="registers")

    @property
    def clusters(self) -> Iterator[ClusterElement]:
        """Iterator over the clusters that are direct children of this peripheral."""
        return self.iter_children(ClusterElement, container="registers")

    def __repr__(self) -> str:
        try:
            name = self.name
        except Exception:
            name = None

        props = {"name": name}

        if (derived_from := self.derived_from) is not None:
            props["derived_from"] = derived_from

        return super()._repr(props=props)


class DeviceElement(NamedMixin, RegisterPropertiesGroupMixin):
    """SVD device element."""

    TAG: str = "device"

    __slots__ = ()

    # Number of data bits selected by each address.
    address_unit_bits: Elem[int] = Elem("addressUnitBits", to_int, default=8)

    # Description of the device processor.
    cpu: Child[CpuElement] = Child("cpu", CpuElement)

    @property
    def peripherals(self) -> Iterator[PeripheralElement]:
        """Iterate over all peripherals in the device"""
        return self.iter_children(PeripheralElement, container="peripherals")
