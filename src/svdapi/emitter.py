# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Code model emitter: walks an analyzed device and produces the output tree in api.py.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from .analysis import (
    AnalyzedDevice,
    AnalyzedField,
    AnalyzedPeripheral,
    AnalyzedRegister,
    Coverage,
    FieldDomain,
    ShapeKey,
)
from .api import (
    AccessorShape,
    ApiDevice,
    BlockItem,
    EnumShape,
    EnumVariant,
    FieldReader,
    FieldWriter,
    InterruptTable,
    InterruptVariant,
    PaddingSlot,
    PeripheralSingleton,
    RawKind,
    RegisterAccessor,
    RegisterBlock,
)
from .layout import Padding


def emit(analyzed: AnalyzedDevice) -> ApiDevice:
    """
    Produce the output tree of an analyzed device.
    The output only depends on the input, and equal inputs produce equal outputs.

    :param analyzed: Analyzed device.
    :return: Output tree.
    """
    return _Emitter().emit(analyzed)


class _Emitter:
    def __init__(self) -> None:
        self._shapes: Dict[ShapeKey, EnumShape] = {}
        self._blocks: List[RegisterBlock] = []
        self._block_owners: Dict[Tuple[Tuple[BlockItem, ...], int], str] = {}

    def emit(self, analyzed: AnalyzedDevice) -> ApiDevice:
        device = analyzed.device
        singletons = [self._emit_peripheral(p) for p in analyzed.peripherals]

        interrupts = InterruptTable(
            tuple(
                InterruptVariant(
                    name=interrupt.name,
                    value=interrupt.value,
                    description=interrupt.description,
                    peripheral=interrupt.peripheral,
                )
                for interrupt in sorted(device.interrupts, key=lambda i: i.value)
            )
        )

        return ApiDevice(
            name=device.name,
            peripherals=tuple(singletons),
            blocks=tuple(self._blocks),
            enum_shapes=tuple(sorted(self._shapes.values(), key=lambda s: s.index)),
            interrupts=interrupts,
            description=device.description,
            cpu=device.cpu,
        )

    def _emit_peripheral(self, analyzed: AnalyzedPeripheral) -> PeripheralSingleton:
        peripheral = analyzed.layout.peripheral
        items: List[BlockItem] = []

        for item in analyzed.items:
            if isinstance(item, Padding):
                items.append(PaddingSlot(offset=item.offset, size=item.size))
            else:
                items.append(self._emit_register(peripheral.name, item))

        key = (tuple(items), analyzed.layout.size)
        block_of = self._block_owners.get(key)
        if block_of is None:
            block_of = peripheral.name
            self._block_owners[key] = block_of
            self._blocks.append(
                RegisterBlock(owner=block_of, items=key[0], size=analyzed.layout.size)
            )

        return PeripheralSingleton(
            name=peripheral.name,
            base_address=peripheral.base_address,
            block_of=block_of,
            description=peripheral.description,
            group_name=peripheral.group_name,
        )

    def _emit_register(self, owner: str, analyzed: AnalyzedRegister) -> RegisterAccessor:
        register = analyzed.register
        shape = AccessorShape.from_access(analyzed.access)

        readers: Tuple[FieldReader, ...] = ()
        writers: Tuple[FieldWriter, ...] = ()

        if shape.has_read:
            readers = tuple(
                self._emit_reader(owner, register.name, f) for f in analyzed.readable_fields
            )
        if shape.has_write:
            writers = tuple(
                self._emit_writer(owner, register.name, f) for f in analyzed.writable_fields
            )

        return RegisterAccessor(
            name=register.name,
            offset=register.offset,
            bit_width=register.bit_width,
            shape=shape,
            reset_value=register.reset_value,
            reset_mask=register.reset_mask,
            readers=readers,
            writers=writers,
            description=register.description,
            register=register,
        )

    def _emit_reader(self, owner: str, register: str, analyzed: AnalyzedField) -> FieldReader:
        field = analyzed.field
        assert analyzed.read is not None

        return FieldReader(
            name=field.name,
            bit_offset=field.bit_offset,
            width=field.bit_width,
            raw_kind=RawKind.for_width(field.bit_width),
            reset_value=analyzed.reset_value,
            enum=self._enum_shape((owner, register, field.name), analyzed.read),
            has_unmatched=analyzed.read.coverage is Coverage.PARTIAL,
            description=field.description,
            field=field,
        )

    def _emit_writer(self, owner: str, register: str, analyzed: AnalyzedField) -> FieldWriter:
        field = analyzed.field
        assert analyzed.write is not None

        return FieldWriter(
            name=field.name,
            bit_offset=field.bit_offset,
            width=field.bit_width,
            raw_kind=RawKind.for_width(field.bit_width),
            reset_value=analyzed.reset_value,
            enum=self._enum_shape((owner, register, field.name), analyzed.write),
            raw_write_safe=analyzed.raw_write_safe,
            description=field.description,
            field=field,
        )

    def _enum_shape(
        self, location: Tuple[str, str, str], domain: FieldDomain
    ) -> Optional[EnumShape]:
        if domain.shape is None or domain.values is None:
            return None

        shape = self._shapes.get(domain.shape)
        if shape is None:
            shape = EnumShape(
                index=len(self._shapes),
                name=location[2],
                owner=location,
                direction=domain.direction,
                width=domain.width,
                coverage=domain.coverage,
                variants=tuple(
                    EnumVariant(
                        name=v.name,
                        values=v.values,
                        is_default=v.is_default,
                        description=v.description,
                    )
                    for v in domain.values.values
                ),
            )
            self._shapes[domain.shape] = shape

        return shape
