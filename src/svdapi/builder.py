# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Model builder: converts the SVD element bindings into the raw semantic model.

The raw model still contains 'derivedFrom' references and unvalidated layouts.
Those are handled by the later stages in the derivation and layout modules.
"""

from __future__ import annotations

import dataclasses as dc
import re
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import svdapi

from . import bindings
from .bindings import EnumUsage, SvdAccess
from .errors import (
    DuplicateInterruptNumberError,
    DuplicateNameError,
    OutOfRangeError,
    Scope,
    SvdDefinitionError,
)
from .model import (
    Access,
    Cpu,
    Device,
    EnumeratedValue,
    EnumeratedValues,
    Field,
    Interrupt,
    Peripheral,
    Register,
    RegisterDefaults,
    WriteRange,
)

if TYPE_CHECKING:
    from .parsing import Options


# Register widths supported by the generated API
REGISTER_WIDTHS = (8, 16, 32, 64)

_ACCESS_MAP: Mapping[SvdAccess, Access] = {
    SvdAccess.READ_ONLY: Access.READ,
    SvdAccess.WRITE_ONLY: Access.WRITE,
    SvdAccess.READ_WRITE: Access.READ_WRITE,
    SvdAccess.WRITE_ONCE: Access.WRITE,
    SvdAccess.READ_WRITE_ONCE: Access.READ_WRITE,
}


def to_access(svd_access: Optional[SvdAccess]) -> Optional[Access]:
    """Map an SVD access type to the effective access mode used by the model."""
    if svd_access is None:
        return None
    return _ACCESS_MAP[svd_access]


def build_device(
    element: bindings.DeviceElement, options: Optional[Options] = None
) -> Device:
    """
    Build the raw model of a device.

    :param element: Binding of the SVD device element.
    :param options: Parsing options.

    :raises DuplicateNameError: If a name is reused within a scope.
    :raises DuplicateInterruptNumberError: If two interrupts use the same vector number.
    :raises OutOfRangeError: If a register size or reset value is invalid.
    :raises SvdDefinitionError: For other invalid definitions.

    :return: Raw device model.
    """
    if element.address_unit_bits != 8:
        raise NotImplementedError("the implementation assumes a byte-addressable device")

    device_name = _require_name(element, ())
    device_props = element.register_properties

    skip_registers: Mapping[str, Sequence[str]] = (
        options.skip_registers if options is not None else {}
    )

    peripherals: List[Peripheral] = []
    peripheral_names: Set[str] = set()
    interrupts = _InterruptCollector()

    for peripheral_element in element.peripherals:
        peripheral = _build_peripheral(peripheral_element, device_props, skip_registers)
        _check_unique(peripheral_names, peripheral.name, (), "peripheral")
        peripherals.append(peripheral)

        for interrupt_element in peripheral_element.interrupts:
            interrupts.add(
                Interrupt(
                    name=_require_name(interrupt_element, (peripheral.name,)),
                    value=interrupt_element.value,
                    description=interrupt_element.description,
                    peripheral=peripheral.name,
                )
            )

    return Device(
        name=device_name,
        peripherals=tuple(peripherals),
        interrupts=interrupts.interrupts,
        defaults=_to_defaults(device_props),
        description=element.description,
        cpu=_build_cpu(element.cpu),
    )


def _build_cpu(element: Optional[bindings.CpuElement]) -> Optional[Cpu]:
    if element is None:
        return None

    return Cpu(
        name=element.name,
        revision=element.revision,
        num_nvic_priority_bits=element.num_nvic_priority_bits,
        has_fpu=element.has_fpu,
        has_mpu=element.has_mpu,
        has_vendor_systick=element.has_vendor_systick,
    )


def _to_defaults(props: bindings.RegisterProperties) -> RegisterDefaults:
    size = props.size if props.size is not None else 32
    return RegisterDefaults(
        size=size,
        access=to_access(props.access),
        reset_value=props.reset_value if props.reset_value is not None else 0,
        reset_mask=props.reset_mask if props.reset_mask is not None else (1 << size) - 1,
    )


def _declared_properties(props: bindings.RegisterProperties) -> Tuple[str, ...]:
    return tuple(
        prop.name for prop in dc.fields(props) if getattr(props, prop.name) is not None
    )


def _build_peripheral(
    element: bindings.PeripheralElement,
    device_props: bindings.RegisterProperties,
    skip_registers: Mapping[str, Sequence[str]],
) -> Peripheral:
    name = _require_name(element, ())
    scope: Scope = (name,)
    reg_props = element.get_register_properties(base_props=device_props)

    skipped: Set[str] = set()
    for pattern_str, register_names in skip_registers.items():
        if re.fullmatch(pattern_str, name) is not None:
            skipped.update(register_names)

    for cluster in element.clusters:
        svdapi.log.warning(
            f"{name}: cluster '{cluster.name}' is not supported and was skipped"
        )

    registers: List[Register] = []
    register_names: Set[str] = set()

    for register_element in element.registers:
        for register in _build_registers(register_element, reg_props, scope):
            if register.name in skipped:
                svdapi.log.debug(f"{name}: skipping register {register.name}")
                continue
            _check_unique(register_names, register.name, scope, "register")
            registers.append(register)

    block_ends = [block.offset + block.size for block in element.address_blocks]

    return Peripheral(
        name=name,
        base_address=element.base_address,
        registers=tuple(registers),
        derived_from=element.derived_from,
        address_block_size=max(block_ends) if block_ends else None,
        defaults=_to_defaults(reg_props),
        declared_properties=_declared_properties(element.register_properties),
        description=element.description,
        group_name=element.group_name,
    )


def _build_registers(
    element: bindings.RegisterElement,
    base_props: bindings.RegisterProperties,
    scope: Scope,
) -> List[Register]:
    """
    Build the register(s) described by a register element.
    A register element with dimensions is expanded to one register per index.
    """
    raw_name = _require_name(element, scope)
    register_scope = scope + (raw_name,)
    props = element.get_register_properties(base_props=base_props)

    size = props.size if props.size is not None else 32
    if size not in REGISTER_WIDTHS:
        raise OutOfRangeError(register_scope, "register size", size)

    reset_value = props.reset_value if props.reset_value is not None else 0
    reset_mask = props.reset_mask if props.reset_mask is not None else (1 << size) - 1
    if reset_value >> size:
        raise OutOfRangeError(register_scope, "reset value", reset_value, (1 << size) - 1)

    if element.is_derived:
        svdapi.log.warning(
            f"{'.'.join(register_scope)}: register derivation is not supported; "
            f"'derivedFrom={element.derived_from}' was ignored"
        )

    fields = _build_fields(element, register_scope)
    access = to_access(element.register_properties.access)
    offset = element.offset
    dimensions = element.dimensions

    if dimensions is None:
        if "%s" in raw_name:
            raise SvdDefinitionError(
                register_scope, "register name contains '%s' but no dimensions are given"
            )
        instances = [(raw_name, offset)]
    else:
        if "%s" not in raw_name:
            raise SvdDefinitionError(
                register_scope, "register has dimensions but its name does not contain '%s'"
            )
        try:
            indices = dimensions.indices()
        except ValueError as e:
            raise SvdDefinitionError(register_scope, str(e)) from e

        instances = [
            (raw_name.replace("[%s]", index).replace("%s", index), offset + step)
            for index, step in zip(indices, dimensions.to_range())
        ]

    return [
        Register(
            name=name,
            offset=instance_offset,
            bit_width=size,
            access=access,
            reset_value=reset_value,
            reset_mask=reset_mask,
            fields=fields,
            description=element.description,
        )
        for name, instance_offset in instances
    ]


def _build_fields(
    element: bindings.RegisterElement, scope: Scope
) -> Tuple[Field, ...]:
    fields: List[Field] = []
    field_names: Set[str] = set()

    for field_element in element.fields:
        name = _require_name(field_element, scope)
        _check_unique(field_names, name, scope, "field")
        field_scope = scope + (name,)

        bit_offset, bit_width = field_element.bit_range
        if bit_width < 1:
            raise OutOfRangeError(field_scope, "bit width", bit_width)
        if bit_offset < 0:
            raise OutOfRangeError(field_scope, "bit offset", bit_offset)

        if field_element.is_derived:
            svdapi.log.warning(
                f"{'.'.join(field_scope)}: field derivation is not supported; "
                f"'derivedFrom={field_element.derived_from}' was ignored"
            )

        read_values: Optional[EnumeratedValues] = None
        write_values: Optional[EnumeratedValues] = None

        for enumeration_element in field_element.enumerations:
            enumeration = _build_enumeration(enumeration_element, field_scope)
            usage = enumeration_element.usage

            if usage in (EnumUsage.READ, EnumUsage.READ_WRITE):
                if read_values is not None:
                    raise SvdDefinitionError(
                        field_scope, "more than one enumeration is used for reads"
                    )
                read_values = enumeration

            if usage in (EnumUsage.WRITE, EnumUsage.READ_WRITE):
                if write_values is not None:
                    raise SvdDefinitionError(
                        field_scope, "more than one enumeration is used for writes"
                    )
                write_values = enumeration

        write_range: Optional[WriteRange] = None
        constraint = field_element.write_constraint
        if constraint is not None and (value_range := constraint.value_range) is not None:
            write_range = WriteRange(minimum=value_range.minimum, maximum=value_range.maximum)

        fields.append(
            Field(
                name=name,
                bit_offset=bit_offset,
                bit_width=bit_width,
                access=to_access(field_element.access),
                read_values=read_values,
                write_values=write_values,
                write_range=write_range,
                description=field_element.description,
            )
        )

    return tuple(fields)


def _build_enumeration(
    element: bindings.EnumerationElement, scope: Scope
) -> EnumeratedValues:
    set_name = element.name
    set_scope = scope + (set_name,) if set_name else scope

    values: List[EnumeratedValue] = []
    value_names: Set[str] = set()
    default_name: Optional[str] = None

    for value_element in element.enums:
        name = _require_name(value_element, set_scope)
        _check_unique(value_names, name, set_scope, "enumerated value")

        if value_element.is_default:
            if default_name is not None:
                raise SvdDefinitionError(
                    set_scope,
                    f"enumerated values '{default_name}' and '{name}' are both marked as default",
                )
            default_name = name
        elif not value_element.values:
            raise SvdDefinitionError(
                set_scope + (name,), "enumerated value has neither a value nor isDefault"
            )

        values.append(
            EnumeratedValue(
                name=name,
                values=value_element.values,
                is_default=value_element.is_default,
                description=value_element.description,
            )
        )

    if element.is_derived and values:
        svdapi.log.warning(
            f"{'.'.join(set_scope)}: enumeration is derived from '{element.derived_from}' "
            "but also lists values; the values of the derived enumeration are used"
        )

    return EnumeratedValues(
        values=tuple(values), name=set_name, derived_from=element.derived_from
    )


class _InterruptCollector:
    """Collects the interrupts declared by each peripheral into one device table."""

    def __init__(self) -> None:
        self._by_name: Dict[str, Interrupt] = {}
        self._by_value: Dict[int, Interrupt] = {}

    def add(self, interrupt: Interrupt) -> None:
        existing = self._by_name.get(interrupt.name)
        if existing is not None:
            # Several peripherals (typically derived ones) may list the same interrupt
            if existing.value == interrupt.value:
                svdapi.log.debug(
                    f"Interrupt {interrupt.name} is declared by both {existing.peripheral} "
                    f"and {interrupt.peripheral}"
                )
                return
            raise DuplicateNameError((), interrupt.name, "interrupt")

        other = self._by_value.get(interrupt.value)
        if other is not None:
            raise DuplicateInterruptNumberError(interrupt.value, other.name, interrupt.name)

        self._by_name[interrupt.name] = interrupt
        self._by_value[interrupt.value] = interrupt

    @property
    def interrupts(self) -> Tuple[Interrupt, ...]:
        """Collected interrupts in declaration order."""
        return tuple(self._by_name.values())


def _require_name(element: bindings.SvdElement, scope: Scope) -> str:
    """Get the normalized, non-empty name of an element."""
    try:
        name = element.name  # type: ignore
    except AttributeError as e:
        raise SvdDefinitionError(scope, f"{element.TAG} element has no name") from e

    if not name:
        raise SvdDefinitionError(scope, f"{element.TAG} element has an empty name")

    return name


def _check_unique(seen: Set[str], name: str, scope: Scope, kind: str) -> None:
    if name in seen:
        raise DuplicateNameError(scope, name, kind)
    seen.add(name)
