# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import dataclasses as dc
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter_ns
from typing import Mapping, Sequence, Union

import lxml.etree as ET

import svdapi

from .bindings import DeviceElement
from .builder import build_device
from .errors import SvdError, SvdParseError
from .model import Device
from .tree import LxmlNode, TreeNode


@dataclass(frozen=True)
class Options:
    """Options to configure the SVD parsing and generation behavior."""

    # Registers to remove from the device prior to generation.
    # This can be used to remove outdated/deprecated registers from the device if they cause
    # issues with generation.
    #
    # The value should be a dictionary mapping string peripheral name regex patterns to lists
    # containing the names of registers to remove from the peripherals matching the pattern.
    # For example, passing the value
    # {"UART[0-9]": ["DEPRECATED"]}
    # would cause the register named "DEPRECATED" to be removed from peripherals whose name
    # match "UART[0-9]" (UART0, UART1 etc.).
    #
    # Note: no exception is raised if the names given don't match anything in the SVD document.
    skip_registers: Mapping[str, Sequence[str]] = dc.field(
        default_factory=lambda: defaultdict(list)
    )

    # Number of worker threads used to lay out and analyze peripherals.
    # Peripherals are processed sequentially when this is 1.
    max_workers: int = 1

    # Log a warning when the declared access of a register contradicts all of its fields.
    warn_on_access_conflict: bool = True


def parse(svd_path: Union[str, Path], options: Options = Options()) -> Device:
    """
    Parse a device described by a SVD file.

    :param svd_path: Path to the SVD file.
    :param options: Parsing options.

    :raises FileNotFoundError: If the SVD file does not exist.
    :raises SvdDefinitionError: If the SVD file contains an invalid definition.
    :raises SvdParseError: If an unexpected error occurred while parsing the SVD file.

    :return: Raw device model of the SVD file.
    """
    t_parse_start = perf_counter_ns()

    svd_file = Path(svd_path)

    if not svd_file.is_file():
        raise FileNotFoundError(f"No such file: {svd_file.absolute()}")

    try:
        # Note: remove comments as otherwise these are present as nodes in the returned XML tree
        xml_parser = ET.XMLParser(remove_comments=True)

        with open(svd_file, "rb") as f:
            xml_device = ET.parse(f, parser=xml_parser)

        device = parse_tree(LxmlNode(xml_device.getroot()), options)

    except SvdError:
        raise
    except Exception as e:
        raise SvdParseError(f"Error parsing SVD file {svd_file}") from e

    t_parse = (perf_counter_ns() - t_parse_start) / 1_000_000
    svdapi.log.debug(f"Parsed {svd_file} in {t_parse:.3f} ms")

    return device


def parse_string(svd_content: Union[str, bytes], options: Options = Options()) -> Device:
    """
    Parse a device described by an SVD document held in memory.

    :param svd_content: Contents of the SVD document.
    :param options: Parsing options.

    :raises SvdDefinitionError: If the document contains an invalid definition.
    :raises SvdParseError: If an unexpected error occurred while parsing the document.

    :return: Raw device model of the document.
    """
    if isinstance(svd_content, str):
        svd_content = svd_content.encode("utf-8")

    try:
        xml_parser = ET.XMLParser(remove_comments=True)
        root = ET.fromstring(svd_content, parser=xml_parser)
        return parse_tree(LxmlNode(root), options)

    except SvdError:
        raise
    except Exception as e:
        raise SvdParseError("Error parsing SVD document") from e


def parse_tree(root: TreeNode, options: Options = Options()) -> Device:
    """
    Build the raw device model from an already parsed document.

    :param root: Root node of the document, which must be a device element.
    :param options: Parsing options.

    :raises SvdParseError: If the root node is not a device element.
    :raises SvdDefinitionError: If the document contains an invalid definition.

    :return: Raw device model.
    """
    if root.tag != DeviceElement.TAG:
        raise SvdParseError(
            f"Expected root element '{DeviceElement.TAG}', found '{root.tag}'"
        )

    return build_device(DeviceElement(root), options)
