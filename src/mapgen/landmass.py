"""Turn calibrated height fields into smooth binary masks.

The shaper binarizes at zero, removes noise with a majority-vote blur,
then alternates morphological opening/closing with "thin mass" repair
until no feature is narrower than a requested thickness.
"""

import numpy as np
import structlog
from numpy.lib.stride_tricks import sliding_window_view
from numpy.typing import NDArray
from scipy import ndimage
from structlog.typing import FilteringBoundLogger

from .fields import reserve_circle_in_place

MAX_PASSES = 16


def boolean_blur(
    mask: NDArray[np.bool_], radius: int, extend_out: bool, threshold: float
) -> tuple[NDArray[np.bool_], int]:
    """Majority-vote blur over a square window.

    A cell becomes true (false) when true (false) samples outnumber the
    other kind by more than int(samples * threshold); otherwise it keeps
    its value.

    Args:
        mask: Input mask.
        radius: Half-width of the (2r+1)^2 window.
        extend_out: Clamp out-of-bounds samples to the nearest edge cell
            instead of ignoring them.
        threshold: Required majority as a fraction of the sample count.

    Returns:
        Tuple of (blurred mask, number of changed cells).
    """
    span = 2 * radius + 1
    window = np.ones((span, span), dtype=np.int32)
    values = mask.astype(np.int32)
    if extend_out:
        true_count = ndimage.correlate(values, window, mode="nearest")
        samples = np.full(mask.shape, span * span, dtype=np.int32)
    else:
        true_count = ndimage.correlate(values, window, mode="constant", cval=0)
        samples = ndimage.correlate(np.ones_like(values), window, mode="constant", cval=0)
    false_count = samples - true_count
    requirement = np.floor(samples * np.float32(threshold)).astype(np.int32)

    output = mask.copy()
    output[true_count - false_count > requirement] = True
    output[false_count - true_count > requirement] = False
    return output, int(np.count_nonzero(output != mask))


def erode_and_dilate(
    mask: NDArray[np.bool_], foreground: bool, amount: int
) -> tuple[NDArray[np.bool_], int]:
    """Morphological opening of the foreground with an amount x amount square.

    Foreground cells not covered by any all-foreground square window are
    flipped. Windows may hang over the map edge; out-of-bounds cells do not
    disqualify them.

    Returns:
        Tuple of (opened mask, number of changed cells).
    """
    if amount <= 1:
        return mask.copy(), 0
    pad = amount - 1
    is_foreground = np.pad(mask == foreground, pad, mode="constant", constant_values=True)
    retained = sliding_window_view(is_foreground, (amount, amount)).all(axis=(-2, -1))
    covered = sliding_window_view(retained, (amount, amount)).any(axis=(-2, -1))
    output = np.where(covered, foreground, not foreground)
    return output, int(np.count_nonzero(output != mask))


def _corner_mask(width: int) -> NDArray[np.int32]:
    span = width + 1
    ys, xs = np.mgrid[0:span, 0:span]
    corner = (1 + 2 * width - xs - ys).astype(np.int32)
    corner[0, 0] = 0
    return corner


def _stamp_corner(
    thinness: NDArray[np.int32],
    corner: NDArray[np.int32],
    cx: int,
    cy: int,
    sx: int,
    sy: int,
) -> None:
    span = corner.shape[0]
    oriented = corner[::sy, ::sx]
    y0 = cy if sy > 0 else cy - span + 1
    x0 = cx if sx > 0 else cx - span + 1
    height, width = thinness.shape
    ty0, tx0 = max(y0, 0), max(x0, 0)
    ty1, tx1 = min(y0 + span, height), min(x0 + span, width)
    if ty0 >= ty1 or tx0 >= tx1:
        return
    region = thinness[ty0:ty1, tx0:tx1]
    np.maximum(region, oriented[ty0 - y0:ty1 - y0, tx0 - x0:tx1 - x0], out=region)


def thinness_scores(mask: NDArray[np.bool_], dilate: bool, width: int) -> NDArray[np.int32]:
    """Score how thin the non-`dilate` features are.

    Every non-`dilate` cell with `dilate` neighbours on two adjacent sides
    stamps a corner mask (1 + 2w - dx - dy, zero at its own cell) into the
    diagonal quadrant between those sides. Only non-`dilate` cells keep a
    score; higher scores mean thinner necks.

    Args:
        mask: Input mask.
        dilate: The value thin features will be flipped to.
        width: Minimum acceptable feature width.

    Returns:
        Integer score array; all zeros when no neck is thinner than width.
    """
    corner = _corner_mask(width)
    thinness = np.zeros(mask.shape, dtype=np.int32)
    target = mask == dilate

    left = np.concatenate([target[:, :1], target[:, :-1]], axis=1)
    right = np.concatenate([target[:, 1:], target[:, -1:]], axis=1)
    up = np.concatenate([target[:1, :], target[:-1, :]], axis=0)
    down = np.concatenate([target[1:, :], target[-1:, :]], axis=0)
    candidate = ~target

    for flags, sx, sy in (
        (right & down, 1, 1),
        (right & up, 1, -1),
        (left & down, -1, 1),
        (left & up, -1, -1),
    ):
        ys, xs = np.nonzero(candidate & flags)
        for cy, cx in zip(ys.tolist(), xs.tolist()):
            _stamp_corner(thinness, corner, cx, cy, sx, sy)

    thinness[target] = 0
    return thinness


def fix_thin_masses_in_place(
    mask: NDArray[np.bool_], dilate: bool, width: int
) -> tuple[int, int]:
    """Flip every cell tied for the highest thinness score to `dilate`.

    Returns:
        Tuple of (highest score, number of changed cells); (0, 0) when
        nothing is too thin.
    """
    thinness = thinness_scores(mask, dilate, width)
    thinnest = int(thinness.max()) if thinness.size else 0
    if thinnest == 0:
        return 0, 0
    thinnest_cells = thinness == thinnest
    mask[thinnest_cells] = dilate
    return thinnest, int(np.count_nonzero(thinnest_cells))


def fix_thin_masses_full(mask: NDArray[np.bool_], dilate: bool, width: int) -> tuple[int, int]:
    """Repeat thin-mass repair until a pass makes no change.

    Returns:
        Tuple of (first pass's highest score, total changed cells).
    """
    thinnest, changes = fix_thin_masses_in_place(mask, dilate, width)
    total = changes
    while changes > 0:
        _, changes = fix_thin_masses_in_place(mask, dilate, width)
        total += changes
    return thinnest, total


def produce_terrain(
    elevation: NDArray[np.float32],
    smoothing: int,
    threshold: float,
    min_thickness: int,
    bias: bool,
    log: FilteringBoundLogger | None = None,
    label: str = "terrain",
) -> NDArray[np.bool_]:
    """Convert a calibrated height field into a smoothed binary mask.

    Args:
        elevation: Height field; cells >= 0 start as true.
        smoothing: Maximum blur radius.
        threshold: Majority threshold for the iterative blur.
        min_thickness: Minimum feature width for both classes.
        bias: Value painted over oscillating areas to break repair cycles.
        log: Diagnostic logger.
        label: Name used in log events.

    Returns:
        Boolean mask of shape elevation.shape.
    """
    if log is None:
        log = structlog.get_logger()
    max_span = max(elevation.shape)
    landmass, _ = boolean_blur(elevation >= 0, smoothing, True, 0.0)

    for outer in range(MAX_PASSES):
        for _ in range(max_span):
            blur_changes = 0
            for radius in range(1, smoothing + 1):
                landmass, changes = boolean_blur(landmass, radius, True, threshold)
                blur_changes += changes
            if blur_changes == 0:
                break

        total_changes = 0
        landmass, changes = erode_and_dilate(landmass, True, min_thickness)
        total_changes += changes
        _, changes = fix_thin_masses_full(landmass, True, min_thickness)
        total_changes += changes

        mid_fix = landmass.copy()

        landmass, changes = erode_and_dilate(landmass, False, min_thickness)
        total_changes += changes
        _, changes = fix_thin_masses_full(landmass, False, min_thickness)
        total_changes += changes

        log.debug("terrain_pass", label=label, passes=outer + 1, changes=total_changes)
        if total_changes == 0:
            break

        if outer >= 8 and outer % 4 == 0:
            flipped_y, flipped_x = np.nonzero(mid_fix != landmass)
            log.debug("terrain_oscillation_break", label=label, cells=len(flipped_x))
            for y, x in zip(flipped_y.tolist(), flipped_x.tolist()):
                reserve_circle_in_place(landmass, (x, y), min_thickness * 2, bias)

    return landmass
