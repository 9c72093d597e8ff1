"""SVG path generation and document assembly."""

from typing import List, Sequence, Tuple

import numpy as np

from .types import Color, Contour, ContourMap, PathElement

# Control point tension for cubic segments
CUBIC_LEAD = 0.6
CUBIC_TRAIL = 0.3

# Smoothing levels above these switch to curved segments
CUBIC_CUTOFF = 0.5
QUADRATIC_CUTOFF = 0.2

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'
SVG_NAMESPACE = "http://www.w3.org/2000/svg"


def format_number(x: float, precision: int = 2) -> str:
    """Format a coordinate with a fixed number of decimals."""
    return f"{x:.{precision}f}"


def color_to_hex(color: Color) -> str:
    """Convert an RGB(A) color to a #RRGGBB string (alpha ignored)."""
    r, g, b = (int(c) for c in color[:3])
    return f"#{r:02X}{g:02X}{b:02X}"


def contour_to_line_path(contour: Contour, precision: int = 2) -> str:
    """Straight-segment path data for a closed contour."""
    fmt = lambda v: format_number(v, precision)
    commands = [f"M {fmt(contour[0][0])} {fmt(contour[0][1])}"]
    for x, y in contour[1:]:
        commands.append(f"L {fmt(x)} {fmt(y)}")
    commands.append("Z")
    return " ".join(commands)


def contour_to_quadratic_path(contour: Contour, precision: int = 2) -> str:
    """Quadratic-segment path data using successive midpoints as controls."""
    fmt = lambda v: format_number(v, precision)
    commands = [f"M {fmt(contour[0][0])} {fmt(contour[0][1])}"]
    for i in range(1, len(contour)):
        prev, curr = contour[i - 1], contour[i]
        cx = (prev[0] + curr[0]) / 2
        cy = (prev[1] + curr[1]) / 2
        commands.append(f"Q {fmt(cx)} {fmt(cy)}, {fmt(curr[0])} {fmt(curr[1])}")
    commands.append("Z")
    return " ".join(commands)


def contour_to_bezier_path(contour: Contour, precision: int = 2) -> str:
    """Cubic-segment path data for a closed contour.

    The first control point sits 0.6 of the way from the previous point to
    the current one; the second is pushed 0.3 of the next step back from
    the current point.
    """
    fmt = lambda v: format_number(v, precision)
    n = len(contour)
    commands = [f"M {fmt(contour[0][0])} {fmt(contour[0][1])}"]
    for i in range(1, n):
        prev, curr, nxt = contour[i - 1], contour[i], contour[(i + 1) % n]
        cp1x = prev[0] + (curr[0] - prev[0]) * CUBIC_LEAD
        cp1y = prev[1] + (curr[1] - prev[1]) * CUBIC_LEAD
        cp2x = curr[0] - (nxt[0] - curr[0]) * CUBIC_TRAIL
        cp2y = curr[1] - (nxt[1] - curr[1]) * CUBIC_TRAIL
        commands.append(
            f"C {fmt(cp1x)} {fmt(cp1y)}, {fmt(cp2x)} {fmt(cp2y)}, {fmt(curr[0])} {fmt(curr[1])}"
        )
    commands.append("Z")
    return " ".join(commands)


def path_data(contour: Contour, smoothing: float, precision: int = 2) -> str:
    """Path data for a contour, with the segment type chosen by ``smoothing``.

    Returns an empty string for contours with fewer than 2 points.
    """
    contour = np.asarray(contour, dtype=np.float64)
    if len(contour) < 2:
        return ""
    if smoothing > CUBIC_CUTOFF and len(contour) >= 3:
        return contour_to_bezier_path(contour, precision)
    if smoothing > QUADRATIC_CUTOFF and len(contour) >= 3:
        return contour_to_quadratic_path(contour, precision)
    return contour_to_line_path(contour, precision)


def contours_to_paths(contours: ContourMap, smoothing: float, precision: int = 2) -> List[PathElement]:
    """Convert traced contours to path elements in paint order.

    Args:
        contours: Dict mapping colors to contours, in layer order
        smoothing: Smoothing level in [0, 1]
        precision: Decimal places for coordinates

    Returns:
        List of PathElement, one per contour with at least 3 points
    """
    paths = []
    for color, layer_contours in contours.items():
        fill = color_to_hex(color)
        for contour in layer_contours:
            if len(contour) < 3:
                continue
            d = path_data(contour, smoothing, precision)
            if d:
                paths.append(PathElement(d=d, fill=fill, opacity=1.0))
    return paths


def path_element_to_svg(path: PathElement) -> str:
    """Serialize one path element; opacity is written only when below 1."""
    opacity = f' opacity="{path.opacity:.2f}"' if path.opacity < 1 else ""
    return f'<path d="{path.d}" fill="{path.fill}"{opacity} />'


def render_svg(width: int, height: int, paths: Sequence[PathElement]) -> Tuple[str, int]:
    """Assemble the SVG document.

    The UTF-8 byte length is summed while the pieces are produced, so the
    document is never encoded a second time.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels
        paths: Path elements in paint order

    Returns:
        Tuple of (svg_string, size_in_bytes)
    """
    pieces = [
        XML_DECLARATION,
        f'<svg xmlns="{SVG_NAMESPACE}" viewBox="0 0 {width} {height}" '
        f'width="{width}" height="{height}">\n',
    ]
    pieces.extend(f"  {path_element_to_svg(path)}\n" for path in paths)
    pieces.append("</svg>")

    size = sum(len(piece.encode("utf-8")) for piece in pieces)
    return "".join(pieces), size


def save_svg(svg_string: str, output_path: str) -> None:
    """
    Save SVG string to file.

    Args:
        svg_string: SVG content
        output_path: Output file path
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(svg_string)
