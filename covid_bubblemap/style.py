"""
Circle paint rules for the case bubble layer.

All ramps are Mapbox GL ``interpolate``/``linear`` expressions keyed on the
``cases`` property. The same stops are evaluated in Python for the legend.
"""

from typing import Dict, List, Sequence, Tuple, Union

CASES_PROPERTY = "cases"

CIRCLE_OPACITY = 0.75

# (cases, value) stops
CIRCLE_STROKE_WIDTH_STOPS: List[Tuple[int, float]] = [
    (1, 1),
    (100000, 1.05),
]

CIRCLE_RADIUS_STOPS: List[Tuple[int, float]] = [
    (1, 5),
    (1000, 8),
    (4000, 10),
    (8000, 15),
    (12000, 18),
    (100000, 25),
]

# ColorBrewer YlOrRd
CIRCLE_COLOR_STOPS: List[Tuple[int, str]] = [
    (1, "#ffffb2"),
    (5000, "#fed976"),
    (10000, "#feb24c"),
    (25000, "#fd8d3c"),
    (50000, "#fc4e2a"),
    (75000, "#e31a1c"),
    (100000, "#b10026"),
]


def interpolate_expression(
    prop: str,
    stops: Sequence[Tuple[float, Union[float, str]]],
) -> List:
    """Build ``["interpolate", ["linear"], ["get", prop], in0, out0, ...]``."""
    expression: List = ["interpolate", ["linear"], ["get", prop]]
    for stop_input, stop_output in stops:
        expression.extend([stop_input, stop_output])
    return expression


def circle_paint() -> Dict:
    """Paint properties for the bubble circle layer."""
    return {
        "circle-opacity": CIRCLE_OPACITY,
        "circle-stroke-width": interpolate_expression(CASES_PROPERTY, CIRCLE_STROKE_WIDTH_STOPS),
        "circle-radius": interpolate_expression(CASES_PROPERTY, CIRCLE_RADIUS_STOPS),
        "circle-color": interpolate_expression(CASES_PROPERTY, CIRCLE_COLOR_STOPS),
    }


def _segment(stops: Sequence[Tuple[float, object]], value: float) -> Tuple[int, float]:
    """Index of the lower stop and the 0-1 position of value in its segment."""
    if value <= stops[0][0]:
        return 0, 0.0
    if value >= stops[-1][0]:
        return len(stops) - 1, 0.0
    for i in range(len(stops) - 1):
        lower, upper = stops[i][0], stops[i + 1][0]
        if lower <= value < upper:
            return i, (value - lower) / (upper - lower)
    return len(stops) - 1, 0.0


def evaluate_stops(stops: Sequence[Tuple[float, float]], value: float) -> float:
    """
    Evaluate a numeric linear ramp the way the renderer does.

    Values outside the stop range clamp to the first/last output.
    """
    i, t = _segment(stops, value)
    if t == 0.0:
        return float(stops[i][1])
    lower, upper = stops[i][1], stops[i + 1][1]
    return lower + (upper - lower) * t


def legend_entries() -> List[Dict]:
    """One legend row per colour stop, with the radius drawn at that count."""
    return [
        {
            "cases": threshold,
            "color": color,
            "radius": round(evaluate_stops(CIRCLE_RADIUS_STOPS, threshold), 1),
        }
        for threshold, color in CIRCLE_COLOR_STOPS
    ]
