# Copyright (c) 2024 Nordic Semiconductor ASA
# SPDX-License-Identifier: Apache-2.0

"""
Generation pipeline: derivation -> layout -> analysis -> emission.

Layout and analysis of a peripheral only depend on that peripheral, so these two stages can be
fanned out over a thread pool. Results are always merged back in peripheral declaration order.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from functools import partial
from time import perf_counter_ns
from typing import Callable, Iterable, List, TypeVar

import svdapi

from .analysis import AnalyzedDevice, AnalyzedPeripheral, analyze_peripheral
from .api import ApiDevice
from .derivation import resolve_derivations
from .emitter import emit
from .layout import DeviceLayout, PeripheralLayout, layout_peripheral
from .model import Device
from .parsing import Options

T = TypeVar("T")
U = TypeVar("U")


def generate(device: Device, options: Options = Options()) -> ApiDevice:
    """
    Run every stage after model building on a raw device.

    :param device: Raw device model, as returned by parse().
    :param options: Generation options.

    :raises SvdDefinitionError: On the first invalid definition found by any stage.

    :return: Output tree of the device.
    """
    t_start = perf_counter_ns()

    resolved = resolve_derivations(device)
    t_resolved = _log_stage("derivation", t_start)

    layout = layout_device(resolved, options)
    t_layout = _log_stage("layout", t_resolved)

    analyzed = analyze_device(layout, options)
    t_analyzed = _log_stage("analysis", t_layout)

    api = emit(analyzed)
    _log_stage("emission", t_analyzed)

    return api


def layout_device(device: Device, options: Options = Options()) -> DeviceLayout:
    """Lay out every peripheral of a resolved device."""
    layouts: List[PeripheralLayout] = _map(
        layout_peripheral, device.peripherals, options.max_workers
    )
    return DeviceLayout(device=device, peripherals=tuple(layouts))


def analyze_device(layout: DeviceLayout, options: Options = Options()) -> AnalyzedDevice:
    """Analyze every peripheral of a laid out device."""
    analyzed: List[AnalyzedPeripheral] = _map(
        partial(analyze_peripheral, warn_on_access_conflict=options.warn_on_access_conflict),
        layout.peripherals,
        options.max_workers,
    )
    return AnalyzedDevice(device=layout.device, peripherals=tuple(analyzed))


def _map(function: Callable[[T], U], items: Iterable[T], max_workers: int) -> List[U]:
    """
    Apply a function to every item, in order.
    The first exception raised by the function is propagated to the caller.
    """
    if max_workers <= 1:
        return [function(item) for item in items]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(function, items))


def _log_stage(stage: str, t_start: int) -> int:
    t_end = perf_counter_ns()
    svdapi.log.debug(f"Stage {stage} finished in {(t_end - t_start) / 1_000_000:.3f} ms")
    return t_end

