"""
Hover tooltip content and pointer handling for the bubble layer.

The browser-side handler emitted by :mod:`covid_bubblemap.mapbox` follows the
same contract as :class:`HoverTracker`: the tooltip is rebuilt only when the
hovered feature id changes, and leaving the layer clears the remembered id.
"""

import html
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

import numpy as np

from .countries import DEFAULT_FLAG_URL_TEMPLATE, flag_url


@dataclass(frozen=True)
class Tooltip:
    """Popup content anchored at a (possibly wrapped) longitude/latitude."""
    html: str
    longitude: float
    latitude: float


def mortality_rate(deaths: float, cases: float) -> float:
    """
    Deaths per hundred confirmed cases.

    Zero cases is not guarded: 0/0 gives nan and n/0 gives inf.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(deaths) / np.float64(cases) * 100)


def format_mortality_rate(rate: float) -> str:
    """Two decimals, half-up; non-finite rates render as NaN/Infinity."""
    if math.isnan(rate):
        return "NaN"
    if math.isinf(rate):
        return "Infinity" if rate > 0 else "-Infinity"
    return str(Decimal(rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def wrap_longitude(longitude: float, cursor_longitude: float) -> float:
    """
    Shift a feature longitude by whole turns until it lies within 180 degrees
    of the cursor, so the popup anchors on the copy of the world under it.
    """
    if not (math.isfinite(longitude) and math.isfinite(cursor_longitude)):
        return longitude
    while abs(cursor_longitude - longitude) > 180:
        longitude += 360 if cursor_longitude > longitude else -360
    return longitude


def build_tooltip_html(
    properties: Dict,
    flag_url_template: str = DEFAULT_FLAG_URL_TEMPLATE,
) -> str:
    """
    Render the tooltip body for one point.

    Args:
        properties: Feature properties (country, province, cases, deaths)
        flag_url_template: Format string with an ``{iso2}`` placeholder

    Returns:
        HTML fragment
    """
    country = properties.get("country") or ""
    province = properties.get("province")
    cases = properties.get("cases", 0)
    deaths = properties.get("deaths", 0)

    province_html = (
        f"<p>Province: <b>{html.escape(str(province))}</b></p>"
        if province not in (None, "", "null") else ""
    )

    rate = format_mortality_rate(mortality_rate(deaths, cases))

    url = flag_url(country, flag_url_template)
    flag_html = f'<img src="{html.escape(url)}" alt="{html.escape(country)}"/>' if url else ""

    return (
        f"<p>Country: <b>{html.escape(country)}</b></p>"
        f"{province_html}"
        f"<p>Cases: <b>{cases}</b></p>"
        f"<p>Deaths: <b>{deaths}</b></p>"
        f"<p>Mortality Rate: <b>{rate}%</b></p>"
        f"{flag_html}"
    )


class HoverTracker:
    """
    Suppresses redundant tooltip updates while the pointer stays on one point.

    Example:
        tracker = HoverTracker()
        tip = tracker.move(feature, cursor_longitude=-179.5)
        if tip is not None:
            show(tip.html, tip.longitude, tip.latitude)
        ...
        tracker.leave()
    """

    def __init__(self, flag_url_template: str = DEFAULT_FLAG_URL_TEMPLATE):
        self.flag_url_template = flag_url_template
        self.last_id = None

    def move(self, feature: Dict, cursor_longitude: float) -> Optional[Tooltip]:
        """
        Handle a pointer move over a feature.

        Returns:
            A new Tooltip when the hovered id changed, else None
        """
        props = feature["properties"]
        feature_id = props["id"]
        if feature_id == self.last_id:
            return None
        self.last_id = feature_id

        longitude, latitude = feature["geometry"]["coordinates"][:2]
        content = props.get("tooltip") or build_tooltip_html(props, self.flag_url_template)
        return Tooltip(
            html=content,
            longitude=wrap_longitude(longitude, cursor_longitude),
            latitude=latitude,
        )

    def leave(self) -> None:
        self.last_id = None
