# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import random
import unittest

from svdapi import Field, OutOfRangeError, OverlapError, Peripheral, Register
from svdapi.layout import Padding, RegisterSlot, layout_peripheral, validate_fields


def _gpio(*registers: Register, base_address: int = 0x4800_0000) -> Peripheral:
    return Peripheral("GPIOA", base_address, registers=registers)


class TestRegisterLayout(unittest.TestCase):
    def test_padding_between_registers(self):
        moder = Register("MODER", 0x00, 32)
        odr = Register("ODR", 0x14, 32)
        layout = layout_peripheral(_gpio(odr, moder))

        self.assertEqual(
            layout.items,
            (
                RegisterSlot(moder, 0x4800_0000),
                Padding(offset=4, size=16),
                RegisterSlot(odr, 0x4800_0014),
            ),
        )
        self.assertEqual(layout.size, 0x18)

    def test_leading_padding(self):
        layout = layout_peripheral(_gpio(Register("DATA", 0x8, 16)))
        self.assertEqual(layout.items[0], Padding(offset=0, size=8))
        self.assertEqual(layout.size, 10)

    def test_adjacent_registers_of_mixed_widths(self):
        layout = layout_peripheral(
            _gpio(Register("A", 0, 8), Register("B", 1, 8), Register("C", 2, 16))
        )
        self.assertFalse(any(isinstance(item, Padding) for item in layout.items))
        self.assertEqual([slot.offset for slot in layout.slots], [0, 1, 2])

    def test_empty_peripheral(self):
        layout = layout_peripheral(_gpio())
        self.assertEqual(layout.items, ())
        self.assertEqual(layout.size, 0)

    def test_equal_offsets(self):
        with self.assertRaises(OverlapError) as cm:
            layout_peripheral(_gpio(Register("A", 0x4, 32), Register("B", 0x4, 32)))
        self.assertEqual(cm.exception.scope, ("GPIOA",))
        self.assertEqual(cm.exception.unit, "byte")

    def test_partial_overlap(self):
        with self.assertRaises(OverlapError) as cm:
            layout_peripheral(_gpio(Register("WIDE", 0x0, 64), Register("NARROW", 0x4, 32)))
        self.assertEqual(cm.exception.first, ("WIDE", 0, 8))
        self.assertEqual(cm.exception.second, ("NARROW", 4, 8))

    def test_address_block_warning(self):
        peripheral = Peripheral(
            "TIMER", 0x1000, registers=(Register("CNT", 0xFC, 64),), address_block_size=0x100
        )
        with self.assertLogs("svdapi", "WARNING"):
            layout_peripheral(peripheral)

    def test_random_layouts_do_not_overlap(self):
        rng = random.Random(1234)

        for _ in range(200):
            offsets = rng.sample(range(0, 0x100, 4), rng.randint(1, 12))
            registers = [
                Register(f"R{i}", offset, rng.choice((8, 16, 32)))
                for i, offset in enumerate(offsets)
            ]
            rng.shuffle(registers)
            layout = layout_peripheral(_gpio(*registers, base_address=0x2000_0000))

            cursor = 0
            for item in layout.items:
                self.assertEqual(item.offset, cursor)
                cursor = item.offset + item.size
                if isinstance(item, RegisterSlot):
                    self.assertEqual(item.address, 0x2000_0000 + item.offset)
                else:
                    self.assertGreater(item.size, 0)

            self.assertEqual(len(list(layout.slots)), len(registers))

    def test_overlap_detected_iff_ranges_intersect(self):
        rng = random.Random(4321)
        seen = {True: 0, False: 0}

        for _ in range(500):
            registers = [
                Register(f"R{i}", rng.randrange(0x40), rng.choice((8, 16, 32, 64)))
                for i in range(rng.randint(1, 6))
            ]
            ranges = [(r.offset, r.offset + r.bit_width // 8) for r in registers]
            overlapping = any(
                a[0] < b[1] and b[0] < a[1]
                for i, a in enumerate(ranges)
                for b in ranges[i + 1 :]
            )
            seen[overlapping] += 1

            with self.subTest(ranges=ranges):
                if overlapping:
                    with self.assertRaises(OverlapError):
                        layout_peripheral(_gpio(*registers))
                else:
                    layout = layout_peripheral(_gpio(*registers))
                    self.assertEqual(len(list(layout.slots)), len(registers))

        self.assertGreater(seen[True], 0)
        self.assertGreater(seen[False], 0)


class TestFieldValidation(unittest.TestCase):
    def test_valid_fields(self):
        register = Register(
            "CTRL", 0, 32, fields=(Field("A", 0, 4), Field("B", 4, 4), Field("C", 31, 1))
        )
        validate_fields(register, ("P", "CTRL"))

    def test_field_beyond_register(self):
        register = Register("CTRL", 0, 16, fields=(Field("HIGH", 12, 8),))
        with self.assertRaises(OutOfRangeError) as cm:
            validate_fields(register, ("P", "CTRL"))
        self.assertEqual(cm.exception.scope, ("P", "CTRL", "HIGH"))
        self.assertEqual(cm.exception.value, 20)

    def test_field_overlap(self):
        register = Register("CTRL", 0, 32, fields=(Field("B", 3, 4), Field("A", 0, 4)))
        with self.assertRaises(OverlapError) as cm:
            validate_fields(register, ("P", "CTRL"))
        self.assertEqual(cm.exception.unit, "bit")
        self.assertEqual(cm.exception.first, ("A", 0, 4))
        self.assertEqual(cm.exception.second, ("B", 3, 7))

    def test_layout_validates_fields(self):
        register = Register("CTRL", 0, 8, fields=(Field("A", 0, 2), Field("B", 1, 1)))
        with self.assertRaises(OverlapError):
            layout_peripheral(_gpio(register))


if __name__ == "__main__":
    unittest.main()
