# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import json
import unittest

from svdapi import generate, parse_string
from svdapi.render import (
    Target,
    hex_literal,
    render_json,
    render_rust,
    to_pascal_case,
    to_snake_case,
    to_upper_case,
    uint_type,
)

from svd_fixtures import device, enumeration, field, peripheral, register


TEST_DEVICE = device(
    [
        peripheral(
            "GPIOA",
            0x4800_0000,
            [
                register("MODER", 0x00, [field("MODE0", 0, 2)]),
                register("ODR", 0x14, [
                    field("DIR", 0, 1, enumerations=[
                        enumeration([("Input", "0"), ("Output", "1")])
                    ]),
                ]),
            ],
            interrupts=[("EXTI0", 6)],
        ),
        peripheral(
            "I2C1",
            0x4000_5400,
            [
                register("CR2", 0x04, [
                    field("SADD0", 0, 1, enumerations=[
                        enumeration([("Disabled", "0")], usage="read")
                    ]),
                    field("SPEED", 1, 2, enumerations=[
                        enumeration([("Slow", "0"), ("Fast", "1"), ("Other", None)],
                                    usage="read")
                    ]),
                ], size=8),
                register("SR", 0x08, [field("BUSY", 0, 1)], access="read-only"),
            ],
            interrupts=[("I2C1_EV", 31)],
        ),
        peripheral("I2C2", 0x4000_5800, derived_from="I2C1"),
    ]
)


class TestRust(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.api = generate(parse_string(TEST_DEVICE))
        cls.source = render_rust(cls.api, Target.NONE)
        cls.cortex_m_source = render_rust(cls.api, Target.CORTEX_M)

    def test_header(self):
        self.assertTrue(self.source.startswith(
            '#![doc = "Peripheral access API for TESTDEV microcontrollers"]'
        ))
        self.assertIn("#![no_std]", self.source)
        self.assertNotIn("cortex_m", self.source)
        self.assertIn("extern crate cortex_m;", self.cortex_m_source)
        self.assertIn("pub const NVIC_PRIO_BITS: u8 = 3;", self.cortex_m_source)

    def test_core_peripherals(self):
        self.assertIn(
            "pub use cortex_m::peripheral::{CBP, CPUID, DCB, DWT, FPB, ITM, NVIC, SCB, SYST, TPIU};",
            self.cortex_m_source,
        )
        self.assertNotIn("CorePeripherals", self.source)

        cpu = (
            "<cpu><name>CM4</name><revision>r0p1</revision><mpuPresent>false</mpuPresent>"
            "<fpuPresent>true</fpuPresent><nvicPrioBits>4</nvicPrioBits>"
            "<vendorSystickConfig>true</vendorSystickConfig></cpu>"
        )
        api = generate(
            parse_string(device([peripheral("P", 0x1000, [register("R", 0)])], extra=cpu))
        )
        source = render_rust(api, Target.CORTEX_M)

        self.assertIn('#![doc = "Processor: CM4 r0p1"]', source)
        self.assertIn("pub const NVIC_PRIO_BITS: u8 = 4;", source)
        self.assertIn(
            "pub use cortex_m::peripheral::{CBP, CPUID, DCB, DWT, FPB, FPU, ITM, NVIC, SCB, TPIU};",
            source,
        )

    def test_register_block(self):
        self.assertIn("pub mod gpioa {", self.source)
        self.assertIn("pub moder: MODER,", self.source)
        self.assertIn("_reserved0: [u8; 16],", self.source)
        self.assertIn("pub odr: ODR,", self.source)
        self.assertIn("0x4800_0000 as *const _", self.source)

    def test_shared_block(self):
        self.assertIn("pub use self::i2c1 as i2c2;", self.source)
        self.assertNotIn("pub mod i2c2 {", self.source)
        self.assertIn("pub struct I2C2 {", self.source)

    def test_accessor_methods(self):
        self.assertIn("pub fn modify<F>(&self, f: F)", self.source)
        # SR is read-only: its module has R but no W
        sr_module = self.source.split("pub mod sr {", 1)[1].split("\n    }\n", 1)[0]
        self.assertIn("pub fn read(&self) -> R {", sr_module)
        self.assertNotIn("pub fn write<F>", sr_module)
        self.assertNotIn("pub fn modify<F>", sr_module)
        self.assertNotIn("pub struct W", sr_module)

    def test_partial_read_enum(self):
        self.assertIn("pub enum SADD0R {", self.source)
        self.assertIn("_Reserved(u8),", self.source)
        self.assertIn("i => SADD0R::_Reserved(i),", self.source)

    def test_default_variant(self):
        self.assertIn("Other(u8),", self.source)
        self.assertIn("i => SPEEDR::Other(i),", self.source)

    def test_exhaustive_read_enum(self):
        self.assertIn("pub enum DIRR {", self.source)
        self.assertIn("0 => DIRR::Input,", self.source)
        self.assertIn("_ => unreachable!(),", self.source)

    def test_raw_write_safety(self):
        # SADD0 has no write enumeration, so its raw bit writer is unchecked
        self.assertIn("pub unsafe fn bit(self, value: bool) -> &'a mut W {", self.source)
        # DIR names both values, so its raw bit writer is safe
        self.assertIn("pub fn bit(self, value: bool) -> &'a mut W {", self.source)
        self.assertIn("pub enum DIRW {", self.source)
        self.assertIn("pub fn output(self) -> &'a mut W {", self.source)

    def test_singletons(self):
        self.assertIn("pub struct Peripherals {", self.source)
        self.assertIn("pub fn take() -> Option<Self> {", self.source)
        self.assertIn("GPIOA: GPIOA { _marker: PhantomData },", self.source)
        self.assertIn("cortex_m::interrupt::free", self.cortex_m_source)

    def test_interrupts(self):
        self.assertIn("pub enum Interrupt {", self.source)
        self.assertIn("EXTI0 = 6,", self.source)
        self.assertIn("Interrupt::I2C1_EV => 31,", self.source)
        self.assertIn("pub use self::interrupt::Interrupt;", self.source)

    def test_vector_table_only_for_targets_with_one(self):
        self.assertNotIn("__INTERRUPTS", self.source)
        self.assertIn("pub static __INTERRUPTS: [Vector; 32] = [", self.cortex_m_source)
        self.assertIn("Vector { _reserved: 0 },", self.cortex_m_source)
        self.assertIn("Vector { _handler: EXTI0 },", self.cortex_m_source)

        msp430_source = render_rust(self.api, Target.MSP430)
        self.assertIn('extern "msp430-interrupt" {', msp430_source)
        self.assertIn("_reserved: u16,", msp430_source)

    def test_deterministic(self):
        self.assertEqual(render_rust(self.api, Target.NONE), self.source)


class TestJson(unittest.TestCase):
    def test_document(self):
        api = generate(parse_string(TEST_DEVICE))
        document = json.loads(render_json(api))

        self.assertEqual(document["name"], "TESTDEV")
        self.assertEqual(
            [p["block_of"] for p in document["peripherals"]], ["GPIOA", "I2C1", "I2C1"]
        )
        gpioa_items = document["blocks"][0]["items"]
        self.assertEqual(gpioa_items[1], {"kind": "padding", "offset": 4, "size": 16})
        self.assertEqual([i["value"] for i in document["interrupts"]], [6, 31])

        shapes = {shape["name"]: shape for shape in document["enums"]}
        self.assertEqual(shapes["SADD0"]["coverage"], "partial")
        self.assertEqual(shapes["DIR"]["coverage"], "exhaustive")


class TestNaming(unittest.TestCase):
    def test_snake_case(self):
        self.assertEqual(to_snake_case("MODER"), "moder")
        self.assertEqual(to_snake_case("CH[0]"), "ch_0_")
        self.assertEqual(to_snake_case("TYPE"), "type_")
        self.assertEqual(to_snake_case("1WIRE"), "_1wire")

    def test_upper_case(self):
        self.assertEqual(to_upper_case("i2c1"), "I2C1")
        self.assertEqual(to_upper_case("CH.EN"), "CH_EN")

    def test_pascal_case(self):
        self.assertEqual(to_pascal_case("DISABLED"), "Disabled")
        self.assertEqual(to_pascal_case("input_mode"), "InputMode")
        self.assertEqual(to_pascal_case("highSpeed"), "HighSpeed")
        self.assertEqual(to_pascal_case("8BIT"), "_8bit")
        self.assertEqual(to_pascal_case("--"), "_")

    def test_hex_literal(self):
        self.assertEqual(hex_literal(0x4800_0000), "0x4800_0000")
        self.assertEqual(hex_literal(0x123), "0x123")
        self.assertEqual(hex_literal(0), "0x0")

    def test_uint_type(self):
        self.assertEqual(uint_type(1), "u8")
        self.assertEqual(uint_type(9), "u16")
        self.assertEqual(uint_type(32), "u32")
        with self.assertRaises(ValueError):
            uint_type(65)


if __name__ == "__main__":
    unittest.main()
