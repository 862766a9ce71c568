# services/rhythmiq/client/chart.py
"""
SVG rendering of the waveform on a fixed 100x100 viewport.
"""
from typing import List, Sequence

VIEWPORT = 100
MARGIN = 10
BAND = VIEWPORT - 2 * MARGIN


def waveform_points(data: Sequence[float]) -> List[tuple]:
    if not data:
        return []
    lo, hi = min(data), max(data)
    span = hi - lo
    last = max(len(data) - 1, 1)

    points = []
    for i, value in enumerate(data):
        x = i / last * VIEWPORT
        # flat input sits on the midline
        normalized = (value - lo) / span * BAND + MARGIN if span else VIEWPORT / 2
        points.append((round(x, 3), round(VIEWPORT - normalized, 3)))
    return points


def waveform_path(data: Sequence[float]) -> str:
    points = waveform_points(data)
    if not points:
        return ""
    return "M " + " L ".join(f"{x},{y}" for x, y in points)


def waveform_svg(data: Sequence[float], stroke: str = "#e11d48") -> str:
    grid = (
        '<defs><pattern id="grid" width="10" height="10" patternUnits="userSpaceOnUse">'
        '<path d="M 10 0 L 0 0 0 10" fill="none" stroke="#e5e7eb" stroke-width="0.5"/>'
        '</pattern></defs>'
        f'<rect width="{VIEWPORT}" height="{VIEWPORT}" fill="url(#grid)"/>'
    )
    line = (
        f'<path d="{waveform_path(data)}" fill="none" stroke="{stroke}" '
        'stroke-width="0.5" vector-effect="non-scaling-stroke"/>'
    )
    return (
        f'<svg viewBox="0 0 {VIEWPORT} {VIEWPORT}" preserveAspectRatio="none" '
        f'width="100%" height="256" xmlns="http://www.w3.org/2000/svg">{grid}{line}</svg>'
    )
