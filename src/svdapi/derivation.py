# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Derivation resolver: expands 'derivedFrom' references between peripherals and between
enumerated value sets, producing a model with no remaining derivation edges.
"""

from __future__ import annotations

import copy
import dataclasses as dc
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import CyclicDerivationError, UnresolvedReferenceError
from .model import Device, EnumeratedValues, Field, Peripheral, Register

# Location of a field: (peripheral name, register name, field name)
FieldLocation = Tuple[str, str, str]

# Location of a named enumerated value set: field location + set name
EnumerationPath = Tuple[str, str, str, str]


def resolve_derivations(device: Device) -> Device:
    """
    Resolve all 'derivedFrom' references in the device.

    :param device: Raw device model.

    :raises UnresolvedReferenceError: If a reference names a nonexistent peripheral or set.
    :raises CyclicDerivationError: If a chain of references revisits an element.

    :return: Device model where every peripheral and enumerated value set is fully materialized.
    """
    resolved: Dict[str, Peripheral] = {}

    # Peripherals are resolved in topological order so that a base peripheral is always
    # materialized before the peripherals deriving from it.
    for peripheral in topo_sort_derived_peripherals(device.peripherals):
        if peripheral.derived_from is None:
            resolved[peripheral.name] = peripheral
        else:
            resolved[peripheral.name] = derive_peripheral(
                peripheral, resolved[peripheral.derived_from]
            )

    peripherals = tuple(resolved[p.name] for p in device.peripherals)

    return dc.replace(device, peripherals=resolve_enumerations(peripherals))


def topo_sort_derived_peripherals(
    peripherals: Sequence[Peripheral],
) -> List[Peripheral]:
    """
    Topologically sort the peripherals based on 'derivedFrom' attributes using Kahn's algorithm.
    The returned list has the property that the peripheral at index i does not derive from
    any of the peripherals at indices i..(n - 1).

    :param peripherals: Peripherals to sort.

    :raises UnresolvedReferenceError: If a peripheral derives from a nonexistent peripheral.
    :raises CyclicDerivationError: If the 'derivedFrom' references form a cycle.

    :return: Peripherals topologically sorted based on the 'derivedFrom' attribute.
    """
    names = {p.name for p in peripherals}

    sorted_peripherals: List[Peripheral] = []
    no_dep_peripherals: List[Peripheral] = []
    dep_graph: Dict[str, List[Peripheral]] = defaultdict(list)

    for peripheral in peripherals:
        if peripheral.derived_from is None:
            no_dep_peripherals.append(peripheral)
        elif peripheral.derived_from not in names:
            raise UnresolvedReferenceError(
                (peripheral.name,), peripheral.derived_from, "peripheral"
            )
        else:
            dep_graph[peripheral.derived_from].append(peripheral)

    while no_dep_peripherals:
        peripheral = no_dep_peripherals.pop()
        sorted_peripherals.append(peripheral)
        # Each peripheral has a maximum of one in-edge since they can only derive from one
        # peripheral. Therefore, once they are encountered here they have no remaining dependencies.
        no_dep_peripherals.extend(dep_graph.pop(peripheral.name, []))

    if dep_graph:
        remaining = [p for dependents in dep_graph.values() for p in dependents]
        raise CyclicDerivationError(_find_cycle(remaining[0], peripherals))

    return sorted_peripherals


def _find_cycle(start: Peripheral, peripherals: Sequence[Peripheral]) -> List[str]:
    """Follow 'derivedFrom' references from start until a peripheral is revisited."""
    by_name = {p.name: p for p in peripherals}
    chain: List[str] = []
    current: Optional[Peripheral] = start

    while current is not None and current.name not in chain:
        chain.append(current.name)
        current = by_name.get(current.derived_from) if current.derived_from else None

    if current is None:
        # Unreachable when called on the remainder of a topological sort
        return chain

    return chain[chain.index(current.name) :] + [current.name]


def derive_peripheral(peripheral: Peripheral, base: Peripheral) -> Peripheral:
    """
    Materialize a derived peripheral.

    The registers of the base peripheral are deep copied. Registers declared on the derived
    peripheral replace the copied register with the same name, with fields merged by name so that
    fields not redeclared are kept. Register offsets are relative, so keeping the base address of
    the derived peripheral rebases every register. Register defaults are inherited from the base
    peripheral, except for the properties the derived peripheral declares itself.

    :param peripheral: Peripheral with a 'derivedFrom' reference.
    :param base: Fully resolved peripheral that it is derived from.
    :return: Resolved peripheral without a 'derivedFrom' reference.
    """
    registers: List[Register] = [copy.deepcopy(r) for r in base.registers]
    positions = {register.name: i for i, register in enumerate(registers)}

    for own_register in peripheral.registers:
        position = positions.get(own_register.name)
        if position is None:
            registers.append(own_register)
            continue

        registers[position] = dc.replace(
            own_register,
            fields=_merge_fields(registers[position].fields, own_register.fields),
        )

    return dc.replace(
        peripheral,
        registers=tuple(registers),
        derived_from=None,
        defaults=dc.replace(
            base.defaults,
            **{name: getattr(peripheral.defaults, name) for name in peripheral.declared_properties},
        ),
        address_block_size=(
            peripheral.address_block_size
            if peripheral.address_block_size is not None
            else base.address_block_size
        ),
        description=peripheral.description or base.description,
        group_name=peripheral.group_name or base.group_name,
    )


def _merge_fields(
    base_fields: Sequence[Field], own_fields: Sequence[Field]
) -> Tuple[Field, ...]:
    """Override base fields by name, appending fields that only exist in own_fields."""
    merged = {field.name: field for field in base_fields}
    for field in own_fields:
        merged[field.name] = field
    return tuple(merged.values())


def resolve_enumerations(
    peripherals: Sequence[Peripheral],
) -> Tuple[Peripheral, ...]:
    """
    Resolve 'derivedFrom' references between enumerated value sets.

    :param peripherals: Peripherals with materialized register sets.
    :return: Peripherals where no enumerated value set has a 'derivedFrom' reference.
    """
    resolver = _EnumerationResolver(peripherals)
    result: List[Peripheral] = []

    for peripheral in peripherals:
        registers: List[Register] = []
        for register in peripheral.registers:
            fields: List[Field] = []
            for field in register.fields:
                location = (peripheral.name, register.name, field.name)
                fields.append(
                    dc.replace(
                        field,
                        read_values=resolver.resolve(location, field.read_values),
                        write_values=resolver.resolve(location, field.write_values),
                    )
                )
            registers.append(dc.replace(register, fields=tuple(fields)))
        result.append(dc.replace(peripheral, registers=tuple(registers)))

    return tuple(result)


class _EnumerationResolver:
    """Looks up enumerated value sets by name or dotted path."""

    def __init__(self, peripherals: Sequence[Peripheral]) -> None:
        self._sets: List[Tuple[EnumerationPath, EnumeratedValues]] = []

        for peripheral in peripherals:
            for register in peripheral.registers:
                for field in register.fields:
                    for values in (field.read_values, field.write_values):
                        if values is None or values.name is None:
                            continue
                        path = (peripheral.name, register.name, field.name, values.name)
                        # A read-write set is referenced by both directions
                        if self._sets and self._sets[-1] == (path, values):
                            continue
                        self._sets.append((path, values))

    def resolve(
        self,
        location: FieldLocation,
        values: Optional[EnumeratedValues],
        stack: Tuple[str, ...] = (),
    ) -> Optional[EnumeratedValues]:
        if values is None or values.derived_from is None:
            return values

        own_path = ".".join(location + (values.name or "<unnamed>",))
        stack = stack + (own_path,)

        target_path, target = self._lookup(location, values.derived_from)
        target_path_str = ".".join(target_path)
        if target_path_str in stack:
            cycle = stack[stack.index(target_path_str) :] + (target_path_str,)
            raise CyclicDerivationError(cycle, scope=location)

        resolved_target = self.resolve(
            (target_path[0], target_path[1], target_path[2]), target, stack
        )
        assert resolved_target is not None

        return EnumeratedValues(
            values=resolved_target.values,
            name=values.name if values.name is not None else resolved_target.name,
            derived_from=None,
        )

    def _lookup(
        self, location: FieldLocation, reference: str
    ) -> Tuple[EnumerationPath, EnumeratedValues]:
        """
        Find the set referenced from the given field.
        Candidates in the same register are preferred over candidates in the same peripheral,
        which are in turn preferred over candidates anywhere in the device.
        """
        parts = tuple(reference.split("."))
        candidates = [
            (path, values)
            for path, values in self._sets
            if len(parts) <= len(path) and path[-len(parts) :] == parts
        ]

        for scope_length in (2, 1, 0):
            for path, values in candidates:
                if path[:scope_length] == location[:scope_length]:
                    return path, values

        raise UnresolvedReferenceError(location, reference, "enumeration")
