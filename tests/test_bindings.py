# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import unittest

import lxml.etree as ET

from svdapi._bindings import expand_int_pattern, to_bool, to_int, to_name, to_text
from svdapi.bindings import (
    Dimensions,
    EnumUsage,
    EnumerationElement,
    FieldElement,
    RegisterElement,
    SvdAccess,
)
from svdapi.tree import LxmlNode


def _node(xml: str) -> LxmlNode:
    return LxmlNode(ET.fromstring(xml))


class TestLiterals(unittest.TestCase):
    def test_decimal_and_hex(self):
        self.assertEqual(expand_int_pattern("42"), (42,))
        self.assertEqual(expand_int_pattern("0x2A"), (42,))
        self.assertEqual(expand_int_pattern("0X2a"), (42,))
        self.assertEqual(expand_int_pattern(" +7 "), (7,))

    def test_scale_suffix(self):
        self.assertEqual(expand_int_pattern("4k"), (4096,))
        self.assertEqual(expand_int_pattern("1M"), (1 << 20,))
        self.assertEqual(expand_int_pattern("0x1k"), (1024,))

    def test_binary(self):
        self.assertEqual(expand_int_pattern("#101"), (5,))
        self.assertEqual(expand_int_pattern("0b11"), (3,))

    def test_binary_dont_care_digits(self):
        self.assertEqual(expand_int_pattern("#1x0"), (4, 6))
        self.assertEqual(expand_int_pattern("#xx"), (0, 1, 2, 3))
        self.assertEqual(expand_int_pattern("0b1X"), (2, 3))

    def test_too_many_dont_care_digits(self):
        with self.assertRaises(ValueError):
            expand_int_pattern("#" + "x" * 17)

    def test_to_int_rejects_patterns(self):
        self.assertEqual(to_int("#10"), 2)
        with self.assertRaises(ValueError):
            to_int("#1x")

    def test_invalid_literals(self):
        for literal in ("", "#", "0xZZ", "abc"):
            with self.subTest(literal=literal):
                with self.assertRaises(ValueError):
                    expand_int_pattern(literal)

    def test_to_bool(self):
        self.assertTrue(to_bool("true"))
        self.assertTrue(to_bool("1"))
        self.assertFalse(to_bool("false"))
        self.assertFalse(to_bool("0"))
        with self.assertRaises(ValueError):
            to_bool("yes")

    def test_names_and_text(self):
        self.assertEqual(to_name("  MODER \n"), "MODER")
        self.assertEqual(to_name("mixedCase"), "mixedCase")
        self.assertEqual(to_text("GPIO  port\n   mode register"), "GPIO port mode register")


class TestEnums(unittest.TestCase):
    def test_access_is_case_insensitive(self):
        self.assertIs(SvdAccess("Read-Only"), SvdAccess.READ_ONLY)
        self.assertIs(SvdAccess("writeonce"), SvdAccess.WRITE_ONCE)

    def test_unknown_access(self):
        with self.assertRaises(ValueError):
            SvdAccess("execute")


class TestTree(unittest.TestCase):
    def test_comments_are_skipped(self):
        node = _node("<a><!-- comment --><b>1</b><?pi x?><c/></a>")
        self.assertEqual([child.tag for child in node.children()], ["b", "c"])

    def test_children_by_tag(self):
        node = _node("<a><b/><c/><b/></a>")
        self.assertEqual(len(list(node.children("b"))), 2)

    def test_attribute_and_text(self):
        node = _node('<a derivedFrom="X">text</a>')
        self.assertEqual(node.attribute("derivedFrom"), "X")
        self.assertIsNone(node.attribute("missing"))
        self.assertEqual(node.text(), "text")


class TestElements(unittest.TestCase):
    def test_bit_range_offset_width(self):
        field = FieldElement(
            _node("<field><name>F</name><bitOffset>3</bitOffset><bitWidth>2</bitWidth></field>")
        )
        self.assertEqual(tuple(field.bit_range), (3, 2))

    def test_bit_range_lsb_msb(self):
        field = FieldElement(_node("<field><name>F</name><lsb>4</lsb><msb>7</msb></field>"))
        self.assertEqual(tuple(field.bit_range), (4, 4))

    def test_bit_range_pattern(self):
        field = FieldElement(_node("<field><name>F</name><bitRange>[15:8]</bitRange></field>"))
        self.assertEqual(tuple(field.bit_range), (8, 8))

    def test_missing_required_element(self):
        register = RegisterElement(_node("<register><name>R</name></register>"))
        with self.assertRaises(AttributeError):
            register.offset

    def test_empty_element_is_missing(self):
        register = RegisterElement(
            _node("<register><name>R</name><addressOffset>4</addressOffset><size> </size></register>")
        )
        self.assertEqual(register.offset, 4)
        self.assertIsNone(register.register_properties.size)

    def test_register_properties_inheritance(self):
        register = RegisterElement(
            _node("<register><name>R</name><addressOffset>0</addressOffset><size>16</size></register>")
        )
        base = RegisterElement(
            _node(
                "<register><name>B</name><addressOffset>0</addressOffset>"
                "<size>32</size><access>read-only</access><resetValue>5</resetValue></register>"
            )
        ).register_properties
        props = register.get_register_properties(base_props=base)
        self.assertEqual(props.size, 16)
        self.assertIs(props.access, SvdAccess.READ_ONLY)
        self.assertEqual(props.reset_value, 5)
        self.assertIsNone(props.reset_mask)

    def test_enumeration_usage_default(self):
        enumeration = EnumerationElement(
            _node("<enumeratedValues><enumeratedValue><name>A</name><value>0</value>"
                  "</enumeratedValue></enumeratedValues>")
        )
        self.assertIs(enumeration.usage, EnumUsage.READ_WRITE)
        self.assertIsNone(enumeration.name)
        self.assertFalse(enumeration.is_derived)
        (value,) = list(enumeration.enums)
        self.assertEqual(value.values, (0,))
        self.assertFalse(value.is_default)


class TestDimensions(unittest.TestCase):
    def test_default_indices(self):
        self.assertEqual(Dimensions(length=3, step=4).indices(), ["0", "1", "2"])
        self.assertEqual(list(Dimensions(length=3, step=4).to_range()), [0, 4, 8])

    def test_numeric_range(self):
        self.assertEqual(Dimensions(3, 4, "1-3").indices(), ["1", "2", "3"])

    def test_letter_range(self):
        self.assertEqual(Dimensions(4, 4, "A-D").indices(), ["A", "B", "C", "D"])

    def test_list(self):
        self.assertEqual(Dimensions(2, 4, "RX, TX").indices(), ["RX", "TX"])

    def test_length_mismatch(self):
        with self.assertRaises(ValueError):
            Dimensions(2, 4, "0-3").indices()


if __name__ == "__main__":
    unittest.main()
