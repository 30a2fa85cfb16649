# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

from .errors import (
    SvdError,
    SvdParseError,
    SvdDefinitionError,
    DuplicateNameError,
    CyclicDerivationError,
    UnresolvedReferenceError,
    OverlapError,
    OutOfRangeError,
    DuplicateInterruptNumberError,
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
from .parsing import (
    parse,
    parse_string,
    parse_tree,
    Options,
)
from .analysis import Coverage
from .api import (
    AccessorShape,
    ApiDevice,
    EnumShape,
    FieldReader,
    FieldWriter,
    InterruptTable,
    PaddingSlot,
    PeripheralSingleton,
    RawKind,
    RegisterAccessor,
    RegisterBlock,
)
from .pipeline import generate

import importlib.metadata
import logging

__version__ = importlib.metadata.version("svdapi")


def _init_logger() -> logging.Logger:
    formatter = logging.Formatter("{message}", style="{")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logger = logging.getLogger("svdapi")
    logger.setLevel(logging.ERROR)
    logger.addHandler(handler)

    return logger


# logging.Logger instance used for log output from svdapi
log = _init_logger()

__all__ = [
    # from errors
    "SvdError",
    "SvdParseError",
    "SvdDefinitionError",
    "DuplicateNameError",
    "CyclicDerivationError",
    "UnresolvedReferenceError",
    "OverlapError",
    "OutOfRangeError",
    "DuplicateInterruptNumberError",
    # from model
    "Access",
    "Cpu",
    "Device",
    "EnumeratedValue",
    "EnumeratedValues",
    "Field",
    "Interrupt",
    "Peripheral",
    "Register",
    "RegisterDefaults",
    "WriteRange",
    # from parsing
    "parse",
    "parse_string",
    "parse_tree",
    "Options",
    # from analysis
    "Coverage",
    # from api
    "AccessorShape",
    "ApiDevice",
    "EnumShape",
    "FieldReader",
    "FieldWriter",
    "InterruptTable",
    "PaddingSlot",
    "PeripheralSingleton",
    "RawKind",
    "RegisterAccessor",
    "RegisterBlock",
    # from pipeline
    "generate",
    # other
    "log",
    "__version__",
]
