# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import dataclasses
import enum
import json
import logging
import sys
from pathlib import Path
from textwrap import dedent
from typing import List, Optional

import svdapi
from svdapi.render import Target, render_json, render_rust


class Format(enum.Enum):
    RUST = enum.auto()
    JSON = enum.auto()


def cli(argv: Optional[List[str]] = None) -> None:
    top = argparse.ArgumentParser(
        description=dedent(
            """\
            Generate typed peripheral access APIs from System View Description (SVD) files.
            """
        ),
        allow_abbrev=False,
    )
    top.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help=(
            "Output verbose logs. Can be given multiple times to increase the verbosity. "
            "By default only critical messages are output."
        ),
    )

    sub = top.add_subparsers(title="subcommands")

    gen = sub.add_parser(
        "generate",
        help="Generate the peripheral access API of a device.",
        description=dedent(
            """\
            Parse a device SVD file, resolve and validate it, and output the generated
            peripheral access API in one of the supported formats.
            """
        ),
        allow_abbrev=False,
    )
    gen.set_defaults(_command="generate")

    gen_svd = gen.add_argument_group("SVD options")
    gen_svd.add_argument(
        "-i",
        "--input",
        required=True,
        type=Path,
        help="Path to the device SVD file.",
    )
    gen_svd.add_argument(
        "--svd-parse-options",
        type=json.loads,
        help=(
            "JSON object used to override fields in the Options object to customize parsing "
            "and generation behavior. Mainly intended for advanced use cases such as working "
            "around difficult SVD files."
        ),
    )

    gen_out = gen.add_argument_group("output options")
    gen_out.add_argument(
        "--target",
        choices=[t.value for t in Target],
        default=Target.CORTEX_M.value,
        help="Target architecture. Only affects whether an interrupt vector table is output.",
    )
    gen_out.add_argument(
        "-f",
        "--format",
        choices=[f.name.lower() for f in Format],
        default=Format.RUST.name.lower(),
        help="Output format.",
    )
    gen_out.add_argument(
        "-o",
        "--output-file",
        type=argparse.FileType("w", encoding="utf-8"),
        default=sys.stdout,
        help="File to write the output to. If not given, output is written to stdout.",
    )

    args = top.parse_args(argv)

    log_level = {
        0: logging.CRITICAL,
        1: logging.WARNING,
        2: logging.INFO,
        3: logging.DEBUG,
    }.get(args.verbose, logging.DEBUG)
    svdapi.log.setLevel(log_level)

    if not hasattr(args, "_command"):
        top.print_usage()
        sys.exit(2)

    if args._command == "generate":
        try:
            cmd_generate(args)
        except svdapi.SvdError as e:
            svdapi.log.critical(str(e))
            sys.exit(1)
    else:
        top.print_usage()
        sys.exit(2)

    sys.exit(0)


def cmd_generate(args: argparse.Namespace) -> None:
    options = svdapi.Options()
    if args.svd_parse_options:
        options = dataclasses.replace(options, **args.svd_parse_options)

    device = svdapi.parse(args.input, options=options)
    api = svdapi.generate(device, options=options)

    output_format = Format[args.format.upper()]
    if output_format == Format.RUST:
        args.output_file.write(render_rust(api, Target(args.target)))
    elif output_format == Format.JSON:
        args.output_file.write(render_json(api))

    args.output_file.flush()


# Entry point when running with python -m svdapi
if __name__ == "__main__":
    cli()
