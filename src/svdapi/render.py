# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Renderers turning the output tree into source text.

render_rust() produces a single Rust source file exposing one module per register block,
R/W proxies per register and typed field accessors. render_json() dumps the output tree as JSON,
which is mostly useful for inspecting the result of the generator.
"""

from __future__ import annotations

import enum
import json
import re
from textwrap import dedent
from typing import Any, Dict, List, Optional

from .api import (
    ApiDevice,
    EnumShape,
    EnumVariant,
    FieldReader,
    FieldWriter,
    InterruptTable,
    PaddingSlot,
    PeripheralSingleton,
    RawKind,
    RegisterAccessor,
    RegisterBlock,
)
from .model import Cpu


@enum.unique
class Target(enum.Enum):
    """Architecture targeted by the generated code."""

    # Peripheral API only
    NONE = "none"
    CORTEX_M = "cortex-m"
    MSP430 = "msp430"

    @property
    def has_vector_table(self) -> bool:
        return self is not Target.NONE


# Identifiers that can not be used as is in Rust source
_RUST_KEYWORDS = frozenset(
    """
    abstract alignof as become box break const continue crate do else enum extern false final fn
    for if impl in let loop macro match mod move mut offsetof override priv proc pub pure ref
    return self sizeof static struct super trait true type typeof unsafe unsized use virtual
    where while yield async await dyn try
    """.split()
)


def to_snake_case(name: str) -> str:
    """Lower case identifier for functions and modules."""
    ident = _sanitize(name).lower()
    return f"{ident}_" if ident in _RUST_KEYWORDS else ident


def to_upper_case(name: str) -> str:
    """Upper case identifier for types and constants."""
    return _sanitize(name).upper()


def to_pascal_case(name: str) -> str:
    """Pascal case identifier for enum variants."""
    parts = [p for p in re.split(r"[^0-9A-Za-z]+", name) if p]
    # All upper case words are normalized, mixed case words keep their inner capitals
    ident = "".join(
        p[0].upper() + (p[1:].lower() if p.isupper() else p[1:]) for p in parts
    )
    if not ident:
        return "_"
    return f"_{ident}" if ident[0].isdigit() else ident


def _sanitize(name: str) -> str:
    ident = re.sub(r"[^0-9A-Za-z_]", "_", name)
    return f"_{ident}" if not ident or ident[0].isdigit() else ident


def hex_literal(value: int) -> str:
    """Hex literal with digits grouped by four, e.g. 0x4800_0000."""
    digits = f"{value:x}"
    groups = []
    while digits:
        groups.insert(0, digits[-4:])
        digits = digits[:-4]
    return "0x" + "_".join(groups or ["0"])


def uint_type(width: int) -> str:
    """Smallest unsigned Rust integer type that holds the given number of bits."""
    for size in (8, 16, 32, 64):
        if width <= size:
            return f"u{size}"
    raise ValueError(f"no integer type holds {width} bits")


def _doc(text: Optional[str]) -> str:
    if not text:
        return ""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'#[doc = "{escaped}"]'


def _bit_doc(offset: int, width: int, description: Optional[str]) -> str:
    span = f"Bit {offset}" if width == 1 else f"Bits {offset}:{offset + width - 1}"
    return _doc(f"{span} - {description}" if description else span)


def _join(lines: List[str]) -> str:
    return "\n".join(line for line in lines if line)


def _indent(text: str, level: int = 1) -> str:
    prefix = "    " * level
    return "\n".join(prefix + line if line else line for line in text.splitlines())


def render_rust(api: ApiDevice, target: Target = Target.NONE) -> str:
    """
    Render the output tree as a Rust source file.

    :param api: Output tree of a device.
    :param target: Target architecture. The vector table is only rendered for targets that
                   have one.

    :return: Rust source text.
    """
    sections = [_render_header(api, target), _render_interrupts(api.interrupts, target)]

    for singleton in api.iter_peripherals():
        sections.append(_render_singleton(api, singleton))

    sections.append(_render_peripherals(api, target))

    return "\n\n".join(s for s in sections if s).rstrip() + "\n"


def _render_header(api: ApiDevice, target: Target) -> str:
    lines = [f'#![doc = "Peripheral access API for {api.name} microcontrollers"]']
    if api.cpu is not None:
        processor = " ".join(filter(None, (api.cpu.name, api.cpu.revision)))
        lines += ['#![doc = ""]', f'#![doc = "Processor: {processor}"]']
    lines += [
        "#![allow(non_camel_case_types)]",
        "#![no_std]",
        "",
        "extern crate bare_metal;",
        "extern crate vcell;",
    ]
    if target is Target.CORTEX_M:
        lines.append("extern crate cortex_m;")
    elif target is Target.MSP430:
        lines.append("extern crate msp430;")

    lines += ["", "use core::marker::PhantomData;", "use core::ops::Deref;"]

    if target is Target.CORTEX_M:
        bits = 3
        if api.cpu is not None and api.cpu.num_nvic_priority_bits is not None:
            bits = api.cpu.num_nvic_priority_bits
        lines += [
            "",
            _doc("Number available in the NVIC for configuring priority"),
            f"pub const NVIC_PRIO_BITS: u8 = {bits};",
            "",
            _render_core_peripherals(api.cpu),
        ]

    return "\n".join(lines)


def _render_core_peripherals(cpu: Optional[Cpu]) -> str:
    names = ["CBP", "CPUID", "DCB", "DWT", "FPB", "ITM", "NVIC", "SCB", "TPIU"]
    if cpu is not None and cpu.has_fpu:
        names.append("FPU")
    if cpu is not None and cpu.has_mpu:
        names.append("MPU")
    # A vendor specific SysTick replaces the core one
    if cpu is None or not cpu.has_vendor_systick:
        names.append("SYST")

    return "\n".join(
        [
            "pub use cortex_m::peripheral::Peripherals as CorePeripherals;",
            f"pub use cortex_m::peripheral::{{{', '.join(sorted(names))}}};",
        ]
    )


def _render_interrupts(interrupts: InterruptTable, target: Target) -> str:
    if not interrupts:
        return ""

    variants = _join(
        [
            _join([_doc(i.description or i.name), f"{to_upper_case(i.name)} = {i.value},"])
            for i in interrupts
        ]
    )
    arms = _join(
        [f"Interrupt::{to_upper_case(i.name)} => {i.value}," for i in interrupts]
    )

    sections = [
        _join(
            [
                _doc("Enumeration of all the interrupts"),
                "#[derive(Clone, Copy, Debug, PartialEq, Eq)]",
                "pub enum Interrupt {",
                _indent(variants),
                "}",
            ]
        ),
        dedent(
            """\
            unsafe impl bare_metal::Nr for Interrupt {
                #[inline]
                fn nr(&self) -> u8 {
                    match *self {
            {arms}
                    }
                }
            }"""
        ).replace("{arms}", _indent(arms, 3)),
    ]

    if target.has_vector_table:
        sections.append(_render_vector_table(interrupts, target))

    body = "\n\n".join(sections)
    return _join([_doc("Interrupts"), "pub mod interrupt {", _indent(body), "}"]) + (
        "\n\npub use self::interrupt::Interrupt;"
    )


def _render_vector_table(interrupts: InterruptTable, target: Target) -> str:
    reserved_type = "u16" if target is Target.MSP430 else "u32"
    slots = interrupts.vector_slots()

    handlers = _join([f"fn {to_upper_case(i.name)}();" for i in interrupts])
    entries = _join(
        [
            (
                f"Vector {{ _handler: {to_upper_case(slot.name)} }},"
                if slot is not None
                else "Vector { _reserved: 0 },"
            )
            for slot in slots
        ]
    )

    return "\n".join(
        [
            'extern "msp430-interrupt" {' if target is Target.MSP430 else 'extern "C" {',
            _indent(handlers),
            "}",
            "",
            "#[doc(hidden)]",
            "pub union Vector {",
            '    _handler: unsafe extern "C" fn(),',
            f"    _reserved: {reserved_type},",
            "}",
            "",
            '#[cfg(feature = "rt")]',
            "#[doc(hidden)]",
            '#[link_section = ".vector_table.interrupts"]',
            "#[no_mangle]",
            f"pub static __INTERRUPTS: [Vector; {len(slots)}] = [",
            _indent(entries),
            "];",
        ]
    )


def _render_singleton(api: ApiDevice, singleton: PeripheralSingleton) -> str:
    name = to_upper_case(singleton.name)
    block_module = to_snake_case(singleton.block_of)
    block_type = f"{block_module}::RegisterBlock"

    text = dedent(
        f"""\
        {_doc(singleton.description or singleton.name)}
        pub struct {name} {{
            _marker: PhantomData<*const ()>,
        }}

        unsafe impl Send for {name} {{}}

        impl {name} {{
            #[doc = "Returns a pointer to the register block"]
            pub fn ptr() -> *const {block_type} {{
                {hex_literal(singleton.base_address)} as *const _
            }}
        }}

        impl Deref for {name} {{
            type Target = {block_type};
            fn deref(&self) -> &{block_type} {{
                unsafe {{ &*{name}::ptr() }}
            }}
        }}"""
    )

    if singleton.shares_block:
        return text + f"\n\npub use self::{block_module} as {to_snake_case(singleton.name)};"

    return text + "\n\n" + _render_block(api.block(singleton), singleton.description)


def _render_peripherals(api: ApiDevice, target: Target) -> str:
    names = [to_upper_case(p.name) for p in api.iter_peripherals()]
    fields = _join([f"{_doc(n)}\npub {n}: {n}," for n in names])
    inits = _join([f"{n}: {n} {{ _marker: PhantomData }}," for n in names])

    take = (
        "if unsafe { DEVICE_PERIPHERALS } { None } "
        "else { Some(unsafe { Peripherals::steal() }) }"
    )
    if target is not Target.NONE:
        # Checking and setting the flag must not be interrupted
        crate = "cortex_m" if target is Target.CORTEX_M else "msp430"
        take = f"{crate}::interrupt::free(|_| {take})"

    return dedent(
        """\
        // Set when the peripherals have been taken
        static mut DEVICE_PERIPHERALS: bool = false;

        #[doc = "All the peripherals"]
        #[allow(non_snake_case)]
        pub struct Peripherals {
        {fields}
        }

        impl Peripherals {
            #[doc = "Returns all the peripherals *once*"]
            #[inline]
            pub fn take() -> Option<Self> {
                {take}
            }

            #[doc = "Unchecked version of `Peripherals::take`"]
            pub unsafe fn steal() -> Self {
                DEVICE_PERIPHERALS = true;
                Peripherals {
        {inits}
                }
            }
        }"""
    ).replace("{fields}", _indent(fields)).replace("{inits}", _indent(inits, 3)).replace(
        "{take}", take
    )


def _render_block(block: RegisterBlock, description: Optional[str]) -> str:
    members: List[str] = []
    registers: List[str] = []
    reserved = 0

    for item in block.items:
        if isinstance(item, PaddingSlot):
            members.append(f"_reserved{reserved}: [u8; {item.size}],")
            reserved += 1
            continue

        doc = f"{hex_literal(item.offset)} - {item.description or item.name}"
        member = f"pub {to_snake_case(item.name)}: {to_upper_case(item.name)},"
        members.append(_join([_doc(doc), member]))
        registers.append(_render_register(block.owner, item))

    body = "\n\n".join(
        [
            _join(
                [
                    _doc("Register block"),
                    "#[repr(C)]",
                    "pub struct RegisterBlock {",
                    _indent(_join(members)),
                    "}",
                ]
            )
        ]
        + registers
    )

    return _join(
        [
            _doc(description or block.owner),
            f"pub mod {to_snake_case(block.owner)} {{",
            _indent(body),
            "}",
        ]
    )


def _render_register(owner: str, accessor: RegisterAccessor) -> str:
    name = to_upper_case(accessor.name)
    module = to_snake_case(accessor.name)
    ty = uint_type(accessor.bit_width)
    shape = accessor.shape

    methods: List[str] = []
    if shape.has_modify:
        methods.append(
            dedent(
                """\
                #[doc = "Modifies the contents of the register"]
                #[inline]
                pub fn modify<F>(&self, f: F)
                where
                    for<'w> F: FnOnce(&R, &'w mut W) -> &'w mut W,
                {
                    let bits = self.register.get();
                    let r = R { bits: bits };
                    let mut w = W { bits: bits };
                    f(&r, &mut w);
                    self.register.set(w.bits);
                }"""
            )
        )
    if shape.has_read:
        methods.append(
            dedent(
                """\
                #[doc = "Reads the contents of the register"]
                #[inline]
                pub fn read(&self) -> R {
                    R { bits: self.register.get() }
                }"""
            )
        )
    if shape.has_write:
        methods.append(
            dedent(
                """\
                #[doc = "Writes to the register"]
                #[inline]
                pub fn write<F>(&self, f: F)
                where
                    F: FnOnce(&mut W) -> &mut W,
                {
                    let mut w = W::reset_value();
                    f(&mut w);
                    self.register.set(w.bits);
                }

                #[doc = "Writes the reset value to the register"]
                #[inline]
                pub fn reset(&self) {
                    self.write(|w| w)
                }"""
            )
        )

    parts = [
        _join(
            [
                _doc("Value read from the register") if shape.has_read else "",
                f"pub struct R {{\n    bits: {ty},\n}}" if shape.has_read else "",
            ]
        ),
        _join(
            [
                _doc("Value to write to the register") if shape.has_write else "",
                f"pub struct W {{\n    bits: {ty},\n}}" if shape.has_write else "",
            ]
        ),
        _join([f"impl super::{name} {{", _indent("\n\n".join(methods)), "}"]),
    ]

    for reader in accessor.readers:
        parts.append(_render_reader_type(owner, accessor, reader))
    for writer in accessor.writers:
        parts.append(_render_writer_types(owner, accessor, writer, ty))

    if shape.has_read:
        parts.append(_render_r_impl(accessor, ty))
    if shape.has_write:
        parts.append(_render_w_impl(accessor, ty))

    register_struct = _join(
        [
            _doc(accessor.description or accessor.name),
            f"pub struct {name} {{",
            f"    register: ::vcell::VolatileCell<{ty}>,",
            "}",
        ]
    )
    register_module = _join(
        [
            _doc(accessor.description or accessor.name),
            f"pub mod {module} {{",
            _indent("\n\n".join(p for p in parts if p)),
            "}",
        ]
    )

    return register_struct + "\n\n" + register_module


def _enum_path(shape: EnumShape, suffix: str) -> str:
    owner, register, field = shape.owner
    return (
        f"crate::{to_snake_case(owner)}::{to_snake_case(register)}::"
        f"{to_upper_case(field)}{suffix}"
    )


def _owns(owner: str, accessor: RegisterAccessor, field: str, shape: EnumShape) -> bool:
    return shape.owner == (owner, accessor.name, field)


def _field_shift(offset: int, width: int, ty: str) -> str:
    mask = hex_literal((1 << width) - 1)
    return f"((self.bits >> {offset}) & {mask}) as {ty}"


def _render_reader_type(owner: str, accessor: RegisterAccessor, reader: FieldReader) -> str:
    type_name = f"{to_upper_case(reader.name)}R"
    ty = uint_type(reader.width)
    shape = reader.enum

    if shape is None:
        if reader.raw_kind is RawKind.BIT:
            return dedent(
                f"""\
                {_doc("Value of the field")}
                pub struct {type_name} {{
                    bits: bool,
                }}

                impl {type_name} {{
                    #[doc = "Value of the field as raw bits"]
                    #[inline]
                    pub fn bit(&self) -> bool {{
                        self.bits
                    }}
                    #[doc = "Returns `true` if the bit is clear (0)"]
                    #[inline]
                    pub fn bit_is_clear(&self) -> bool {{
                        !self.bit()
                    }}
                    #[doc = "Returns `true` if the bit is set (1)"]
                    #[inline]
                    pub fn bit_is_set(&self) -> bool {{
                        self.bit()
                    }}
                }}"""
            )
        return dedent(
            f"""\
            {_doc("Value of the field")}
            pub struct {type_name} {{
                bits: {ty},
            }}

            impl {type_name} {{
                #[doc = "Value of the field as raw bits"]
                #[inline]
                pub fn bits(&self) -> {ty} {{
                    self.bits
                }}
            }}"""
        )

    if not _owns(owner, accessor, reader.name, shape):
        return _join(
            [
                _doc(f"Possible values of the field `{reader.name}`"),
                f"pub type {type_name} = {_enum_path(shape, 'R')};",
            ]
        )

    return _render_read_enum(type_name, shape, ty, reader.has_unmatched)


def _render_read_enum(type_name: str, shape: EnumShape, ty: str, has_unmatched: bool) -> str:
    variants: List[str] = []
    bits_arms: List[str] = []
    from_arms: List[str] = []
    predicates: List[str] = []
    default: Optional[EnumVariant] = shape.default

    for variant in shape.variants:
        ident = to_pascal_case(variant.name)
        if variant.is_default:
            # The default variant keeps the raw value it was decoded from
            pattern = f"{type_name}::{ident}(_)"
            variants.append(_join([_doc(variant.description), f"{ident}({ty}),"]))
            bits_arms.append(f"{type_name}::{ident}(bits) => bits,")
            from_arms.extend(f"{v} => {type_name}::{ident}({v})," for v in variant.values)
        else:
            pattern = f"{type_name}::{ident}"
            variants.append(_join([_doc(variant.description), f"{ident},"]))
            bits_arms.append(f"{pattern} => {variant.values[0]},")
            from_arms.extend(f"{v} => {pattern}," for v in variant.values)

        predicates.append(
            dedent(
                f"""\
                #[doc = "Checks if the value of the field is `{ident}`"]
                #[inline]
                pub fn is_{to_snake_case(variant.name)}(&self) -> bool {{
                    match *self {{
                        {pattern} => true,
                        _ => false,
                    }}
                }}"""
            )
        )

    if has_unmatched:
        variants.append(_join([_doc("Reserved"), f"_Reserved({ty}),"]))
        bits_arms.append(f"{type_name}::_Reserved(bits) => bits,")
        from_arms.append(f"i => {type_name}::_Reserved(i),")
    elif default is not None:
        from_arms.append(f"i => {type_name}::{to_pascal_case(default.name)}(i),")
    else:
        # The raw value is masked to the field width but its type is wider
        from_arms.append("_ => unreachable!(),")

    bit_helpers = ""
    if shape.width == 1:
        bit_helpers = dedent(
            """\

            #[doc = "Returns `true` if the bit is clear (0)"]
            #[inline]
            pub fn bit_is_clear(&self) -> bool {
                self.bits() == 0
            }
            #[doc = "Returns `true` if the bit is set (1)"]
            #[inline]
            pub fn bit_is_set(&self) -> bool {
                self.bits() == 1
            }"""
        )

    methods = (
        dedent(
            f"""\
            #[doc = "Value of the field as raw bits"]
            #[inline]
            pub fn bits(&self) -> {ty} {{
                match *self {{
            {{bits_arms}}
                }}
            }}"""
        ).replace("{bits_arms}", _indent(_join(bits_arms), 2))
        + bit_helpers
        + "\n"
        + dedent(
            f"""\
            #[allow(missing_docs)]
            #[doc(hidden)]
            #[inline]
            pub fn _from(value: {ty}) -> {type_name} {{
                match value {{
            {{from_arms}}
                }}
            }}"""
        ).replace("{from_arms}", _indent(_join(from_arms), 2))
        + "\n"
        + "\n".join(predicates)
    )

    return _join(
        [
            _doc("Possible values of the field"),
            "#[derive(Clone, Copy, Debug, PartialEq)]",
            f"pub enum {type_name} {{",
            _indent(_join(variants)),
            "}",
            f"impl {type_name} {{",
            _indent(methods),
            "}",
        ]
    )


def _render_writer_types(
    owner: str, accessor: RegisterAccessor, writer: FieldWriter, register_type: str
) -> str:
    field_name = to_upper_case(writer.name)
    enum_name = f"{field_name}W"
    proxy_name = f"_{field_name}W"
    ty = uint_type(writer.width)
    shape = writer.enum
    unsafe = "" if writer.raw_write_safe else "unsafe "

    parts: List[str] = []
    methods: List[str] = []

    if shape is not None:
        if _owns(owner, accessor, writer.name, shape):
            parts.append(_render_write_enum(enum_name, shape, ty))
        else:
            parts.append(
                _join(
                    [
                        _doc(f"Values that can be written to the field `{writer.name}`"),
                        f"pub type {enum_name} = {_enum_path(shape, 'W')};",
                    ]
                )
            )

        call = "self.bits(variant._bits())"
        if writer.raw_kind is RawKind.BIT:
            call = "self.bit(variant._bits() == 1)"
        if unsafe:
            call = f"unsafe {{ {call} }}"
        methods.append(
            dedent(
                f"""\
                #[doc = "Writes `variant` to the field"]
                #[inline]
                pub fn variant(self, variant: {enum_name}) -> &'a mut W {{
                    {call}
                }}"""
            )
        )
        for variant in shape.variants:
            if not variant.values:
                continue
            methods.append(
                dedent(
                    f"""\
                    {_doc(variant.description or variant.name)}
                    #[inline]
                    pub fn {to_snake_case(variant.name)}(self) -> &'a mut W {{
                        self.variant({enum_name}::{to_pascal_case(variant.name)})
                    }}"""
                )
            )

    mask = hex_literal((1 << writer.width) - 1)
    if writer.raw_kind is RawKind.BIT:
        methods.append(
            dedent(
                f"""\
                #[doc = "Sets the field bit"]
                pub {unsafe}fn set_bit(self) -> &'a mut W {{
                    self.bit(true)
                }}
                #[doc = "Clears the field bit"]
                pub {unsafe}fn clear_bit(self) -> &'a mut W {{
                    self.bit(false)
                }}
                #[doc = "Writes raw bits to the field"]
                #[inline]
                pub {unsafe}fn bit(self, value: bool) -> &'a mut W {{
                    const MASK: bool = true;
                    const OFFSET: u8 = {writer.bit_offset};
                    self.w.bits &= !((MASK as {register_type}) << OFFSET);
                    self.w.bits |= ((value & MASK) as {register_type}) << OFFSET;
                    self.w
                }}"""
            )
        )
    else:
        methods.append(
            dedent(
                f"""\
                #[doc = "Writes raw bits to the field"]
                #[inline]
                pub {unsafe}fn bits(self, value: {ty}) -> &'a mut W {{
                    const MASK: {ty} = {mask};
                    const OFFSET: u8 = {writer.bit_offset};
                    self.w.bits &= !((MASK as {register_type}) << OFFSET);
                    self.w.bits |= ((value & MASK) as {register_type}) << OFFSET;
                    self.w
                }}"""
            )
        )

    parts.append(
        _join(
            [
                _doc("Proxy"),
                f"pub struct {proxy_name}<'a> {{",
                "    w: &'a mut W,",
                "}",
                f"impl<'a> {proxy_name}<'a> {{",
                _indent("\n".join(methods)),
                "}",
            ]
        )
    )

    return "\n\n".join(parts)


def _render_write_enum(enum_name: str, shape: EnumShape, ty: str) -> str:
    writable = [v for v in shape.variants if v.values]
    variants = _join(
        [_join([_doc(v.description), f"{to_pascal_case(v.name)},"]) for v in writable]
    )
    arms = _join(
        [f"{enum_name}::{to_pascal_case(v.name)} => {v.values[0]}," for v in writable]
    )

    return _join(
        [
            _doc("Values that can be written to the field"),
            "#[derive(Clone, Copy, Debug, PartialEq)]",
            f"pub enum {enum_name} {{",
            _indent(variants),
            "}",
            f"impl {enum_name} {{",
            "    #[allow(missing_docs)]",
            "    #[doc(hidden)]",
            "    #[inline]",
            f"    pub fn _bits(&self) -> {ty} {{",
            "        match *self {",
            _indent(arms, 3),
            "        }",
            "    }",
            "}",
        ]
    )


def _render_r_impl(accessor: RegisterAccessor, ty: str) -> str:
    methods = [
        dedent(
            f"""\
            #[doc = "Value of the register as raw bits"]
            #[inline]
            pub fn bits(&self) -> {ty} {{
                self.bits
            }}"""
        )
    ]

    for reader in accessor.readers:
        type_name = f"{to_upper_case(reader.name)}R"
        raw = _field_shift(reader.bit_offset, reader.width, uint_type(reader.width))
        if reader.enum is not None:
            body = f"{type_name}::_from({raw})"
        elif reader.raw_kind is RawKind.BIT:
            body = f"{type_name} {{ bits: (self.bits >> {reader.bit_offset}) & 1 != 0 }}"
        else:
            body = f"{type_name} {{ bits: {raw} }}"

        methods.append(
            _join(
                [
                    _bit_doc(reader.bit_offset, reader.width, reader.description),
                    "#[inline]",
                    f"pub fn {to_snake_case(reader.name)}(&self) -> {type_name} {{",
                    f"    {body}",
                    "}",
                ]
            )
        )

    return _join(["impl R {", _indent("\n".join(methods)), "}"])


def _render_w_impl(accessor: RegisterAccessor, ty: str) -> str:
    methods = [
        dedent(
            f"""\
            #[doc = "Reset value of the register"]
            #[inline]
            pub fn reset_value() -> W {{
                W {{ bits: {hex_literal(accessor.reset_value)} }}
            }}
            #[doc = "Writes raw bits to the register"]
            #[inline]
            pub unsafe fn bits(&mut self, bits: {ty}) -> &mut Self {{
                self.bits = bits;
                self
            }}"""
        )
    ]

    for writer in accessor.writers:
        proxy = f"_{to_upper_case(writer.name)}W"
        methods.append(
            _join(
                [
                    _bit_doc(writer.bit_offset, writer.width, writer.description),
                    "#[inline]",
                    f"pub fn {to_snake_case(writer.name)}(&mut self) -> {proxy} {{",
                    f"    {proxy} {{ w: self }}",
                    "}",
                ]
            )
        )

    return _join(["impl W {", _indent("\n".join(methods)), "}"])


def to_dict(api: ApiDevice) -> Dict[str, Any]:
    """Convert the output tree to a JSON serializable dictionary."""

    def enum_ref(shape: Optional[EnumShape]) -> Optional[int]:
        return shape.index if shape is not None else None

    def accessor_dict(accessor: RegisterAccessor) -> Dict[str, Any]:
        return {
            "kind": "register",
            "name": accessor.name,
            "offset": accessor.offset,
            "bit_width": accessor.bit_width,
            "shape": accessor.shape.value,
            "reset_value": accessor.reset_value,
            "reset_mask": accessor.reset_mask,
            "description": accessor.description,
            "readers": [
                {
                    "name": r.name,
                    "bit_offset": r.bit_offset,
                    "width": r.width,
                    "raw_kind": r.raw_kind.value,
                    "reset_value": r.reset_value,
                    "enum": enum_ref(r.enum),
                    "has_unmatched": r.has_unmatched,
                }
                for r in accessor.readers
            ],
            "writers": [
                {
                    "name": w.name,
                    "bit_offset": w.bit_offset,
                    "width": w.width,
                    "raw_kind": w.raw_kind.value,
                    "reset_value": w.reset_value,
                    "enum": enum_ref(w.enum),
                    "raw_write_safe": w.raw_write_safe,
                }
                for w in accessor.writers
            ],
        }

    return {
        "name": api.name,
        "description": api.description,
        "peripherals": [
            {
                "name": p.name,
                "base_address": p.base_address,
                "block_of": p.block_of,
                "description": p.description,
                "group_name": p.group_name,
            }
            for p in api.iter_peripherals()
        ],
        "blocks": [
            {
                "owner": block.owner,
                "size": block.size,
                "items": [
                    (
                        {"kind": "padding", "offset": item.offset, "size": item.size}
                        if isinstance(item, PaddingSlot)
                        else accessor_dict(item)
                    )
                    for item in block.items
                ],
            }
            for block in api.blocks
        ],
        "enums": [
            {
                "index": shape.index,
                "name": shape.name,
                "owner": list(shape.owner),
                "direction": shape.direction.value,
                "width": shape.width,
                "coverage": shape.coverage.value,
                "variants": [
                    {"name": v.name, "values": list(v.values), "is_default": v.is_default}
                    for v in shape.variants
                ],
            }
            for shape in api.enum_shapes
        ],
        "interrupts": [
            {
                "name": i.name,
                "value": i.value,
                "description": i.description,
                "peripheral": i.peripheral,
            }
            for i in api.iter_interrupts()
        ],
    }


def render_json(api: ApiDevice, indent: Optional[int] = 2) -> str:
    """Render the output tree as a JSON document."""
    return json.dumps(to_dict(api), indent=indent)
