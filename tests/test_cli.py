# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

import contextlib
import io
import json
import logging
import tempfile
import unittest
from pathlib import Path

import svdapi
from svdapi.__main__ import cli

from svd_fixtures import device, field, peripheral, register


VALID_DEVICE = device(
    [
        peripheral(
            "GPIOA",
            0x4800_0000,
            [register("MODER", 0x00, [field("MODE0", 0, 2)]), register("ODR", 0x14)],
            interrupts=[("EXTI0", 6)],
        )
    ]
)

OVERLAPPING_DEVICE = device(
    [peripheral("GPIOA", 0x4800_0000, [register("MODER", 0x00), register("ODR", 0x02)])]
)


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp_path = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()
        svdapi.log.setLevel(logging.ERROR)

    def _svd_file(self, content: str) -> Path:
        path = self.tmp_path / "device.svd"
        path.write_text(content, encoding="utf-8")
        return path

    def _run(self, *argv: str):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            with self.assertRaises(SystemExit) as cm:
                cli(list(argv))
        return cm.exception.code, stdout.getvalue()

    def test_generate_rust(self):
        svd_file = self._svd_file(VALID_DEVICE)
        code, output = self._run("generate", "-i", str(svd_file))

        self.assertEqual(code, 0)
        self.assertIn("pub mod gpioa {", output)
        self.assertIn("__INTERRUPTS", output)

    def test_generate_without_vector_table(self):
        svd_file = self._svd_file(VALID_DEVICE)
        code, output = self._run("generate", "-i", str(svd_file), "--target", "none")

        self.assertEqual(code, 0)
        self.assertNotIn("__INTERRUPTS", output)

    def test_generate_json(self):
        svd_file = self._svd_file(VALID_DEVICE)
        code, output = self._run("generate", "-i", str(svd_file), "-f", "json")

        self.assertEqual(code, 0)
        document = json.loads(output)
        self.assertEqual(document["peripherals"][0]["name"], "GPIOA")

    def test_output_file(self):
        svd_file = self._svd_file(VALID_DEVICE)
        output_file = self.tmp_path / "lib.rs"
        code, output = self._run("generate", "-i", str(svd_file), "-o", str(output_file))

        self.assertEqual(code, 0)
        self.assertEqual(output, "")
        self.assertIn("pub struct Peripherals {", output_file.read_text(encoding="utf-8"))

    def test_svd_parse_options(self):
        svd_file = self._svd_file(VALID_DEVICE)
        options = json.dumps({"skip_registers": {"GPIO.*": ["ODR"]}})
        code, output = self._run(
            "generate", "-i", str(svd_file), "-f", "json", "--svd-parse-options", options
        )

        self.assertEqual(code, 0)
        items = json.loads(output)["blocks"][0]["items"]
        self.assertEqual([item["name"] for item in items], ["MODER"])

    def test_invalid_definition(self):
        svd_file = self._svd_file(OVERLAPPING_DEVICE)
        with self.assertLogs("svdapi", "CRITICAL") as cm:
            code, output = self._run("generate", "-i", str(svd_file))

        self.assertEqual(code, 1)
        self.assertEqual(output, "")
        self.assertIn("overlap", cm.output[0])

    def test_verbosity(self):
        svd_file = self._svd_file(VALID_DEVICE)
        self._run("-vvv", "generate", "-i", str(svd_file), "-f", "json")
        self.assertEqual(svdapi.log.level, logging.DEBUG)

    def test_no_command(self):
        code, output = self._run()
        self.assertEqual(code, 2)
        self.assertIn("usage:", output)


if __name__ == "__main__":
    unittest.main()
