"""
Case bubble map: Mapbox GL JS web application generator.

Produces a self-contained HTML file that visualises:

  1. One circle per located JHU CSSE record, coloured and sized by confirmed
     cases (see :mod:`covid_bubblemap.style`).
  2. A **hover tooltip** with country, province, cases, deaths, mortality
     rate and flag. The tooltip is rebuilt only when the hovered point
     changes, and is anchored on the world copy under the cursor.
  3. A **legend** built from the colour ramp and a header with totals.

All GeoJSON data is embedded directly in the HTML as a JavaScript variable,
so the output is a fully standalone file that can be served from any static
host.

Usage:
    from covid_bubblemap.mapbox import generate_bubble_map, MapboxConfig

    cfg = MapboxConfig(mapbox_token="pk.xxx…")
    html_path = generate_bubble_map(
        points      = client.query(),
        output_path = Path("output/bubble_map.html"),
        config      = cfg,
    )
"""

import html
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from .countries import DEFAULT_FLAG_URL_TEMPLATE
from .jhu import CasePoint
from .style import circle_paint, legend_entries
from .tooltip import build_tooltip_html

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class MapboxConfig:
    """
    Configuration for the bubble map web app.

    Attributes:
        mapbox_token:      Mapbox public token (pk.xxx…).  Read from
                           MAPBOX_TOKEN env var if not provided.
        map_style:         Mapbox style URL.
        initial_center:    Starting map centre [longitude, latitude].
        initial_zoom:      Starting map zoom level.
        gl_version:        Mapbox GL JS release loaded from the CDN.
        source_id:         GeoJSON source id.
        layer_id:          Circle layer id (hover events bind to it).
        flag_url_template: Flag image URL with an ``{iso2}`` placeholder.
    """
    mapbox_token: Optional[str] = None
    map_style: str = "mapbox://styles/mapbox/streets-v9"
    initial_center: Tuple[float, float] = (16.0, 27.0)  # [lon, lat]
    initial_zoom: float = 2.0
    gl_version: str = "v3.3.0"
    source_id: str = "points"
    layer_id: str = "circles"
    flag_url_template: str = DEFAULT_FLAG_URL_TEMPLATE

    def __post_init__(self):
        if self.mapbox_token is None:
            self.mapbox_token = os.environ.get("MAPBOX_TOKEN", "")
        self.initial_center = tuple(self.initial_center)


# ---------------------------------------------------------------------------
# Declarative map pieces
# ---------------------------------------------------------------------------

def _safe_json(obj) -> str:
    """Serialise *obj* to compact JSON, safe for embedding in a <script> tag."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).replace("</", "<\\/")


def prepare_features(points: Sequence[CasePoint], flag_url_template: str) -> Dict:
    """FeatureCollection with the tooltip HTML precomputed on every feature."""
    features = []
    for point in points:
        feature = point.to_feature()
        feature["properties"]["tooltip"] = build_tooltip_html(
            feature["properties"], flag_url_template
        )
        features.append(feature)
    return {"type": "FeatureCollection", "features": features}


def build_map_spec(points: Sequence[CasePoint], config: MapboxConfig) -> Dict:
    """
    Map options, source and layer definitions as plain dicts.

    Returns:
        Dict with ``map``, ``source`` and ``layer`` keys
    """
    cx, cy = config.initial_center
    return {
        "map": {
            "container": "map",
            "style": config.map_style,
            "center": [cx, cy],
            "zoom": config.initial_zoom,
        },
        "source": {
            "type": "geojson",
            "data": prepare_features(points, config.flag_url_template),
        },
        "layer": {
            "id": config.layer_id,
            "source": config.source_id,
            "type": "circle",
            "paint": circle_paint(),
        },
    }


def summarize(points: Sequence[CasePoint]) -> Dict:
    """Header totals."""
    updated = [p.updated_at for p in points if p.updated_at]
    return {
        "locations": len(points),
        "cases": sum(p.cases for p in points),
        "deaths": sum(p.deaths for p in points),
        "updated_at": max(updated) if updated else "",
    }


# ---------------------------------------------------------------------------
# HTML template builder
# ---------------------------------------------------------------------------

def _legend_html() -> str:
    rows = []
    for entry in legend_entries():
        size = entry["radius"] * 2
        rows.append(
            f'  <div class="legend-item">'
            f'<div class="legend-swatch" style="background:{entry["color"]};'
            f'width:{size}px;height:{size}px;"></div>'
            f'<span class="legend-label">{entry["cases"]:,}+</span></div>'
        )
    return "\n".join(rows)


def _build_html(spec: Dict, config: MapboxConfig, title: str, summary: Dict) -> str:
    """
    Render the full HTML string for the bubble map.

    Embeds the point FeatureCollection as a JavaScript variable so the file
    is fully standalone.
    """
    token = config.mapbox_token or ""
    title = html.escape(title)
    gl = config.gl_version
    source_id = config.source_id
    layer_id = config.layer_id

    points_js = _safe_json(spec["source"]["data"])
    map_js = _safe_json(spec["map"])
    layer_js = _safe_json(spec["layer"])
    updated = f"Updated {summary['updated_at']}" if summary["updated_at"] else ""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8"/>
<meta name="viewport" content="width=device-width, initial-scale=1.0"/>
<title>{title}</title>
<link href="https://api.mapbox.com/mapbox-gl-js/{gl}/mapbox-gl.css" rel="stylesheet"/>
<script src="https://api.mapbox.com/mapbox-gl-js/{gl}/mapbox-gl.js"></script>
<style>
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: 'Segoe UI', Arial, sans-serif; }}
  #map {{ position: absolute; top: 0; bottom: 0; width: 100%; }}

  /* ── Header ── */
  #header {{
    position: absolute; top: 0; left: 0; right: 0; z-index: 10;
    background: rgba(17,17,17,0.85); padding: 8px 16px;
    display: flex; align-items: center; gap: 12px; color: #e5e7eb;
  }}
  #header h1 {{ font-size: 1rem; font-weight: 600; color: #f9fafb; }}
  .badge {{
    display: inline-block; padding: 2px 8px; border-radius: 9999px;
    font-size: 0.72rem; font-weight: 500;
  }}
  .badge-amber {{ background: #78350f; color: #fde68a; }}
  .badge-red   {{ background: #991b1b; color: #fca5a5; }}
  .badge-gray  {{ background: #374151; color: #d1d5db; }}

  /* ── Legend ── */
  #legend {{
    position: absolute; bottom: 36px; right: 10px; z-index: 10;
    background: rgba(255,255,255,0.92); border: 1px solid #d1d5db;
    border-radius: 8px; padding: 10px 12px;
  }}
  #legend h3 {{ font-size: 0.75rem; font-weight: 600; margin-bottom: 6px; color: #374151; text-transform: uppercase; }}
  .legend-item {{ display: flex; align-items: center; gap: 8px; margin-bottom: 4px; }}
  .legend-swatch {{ border-radius: 50%; opacity: 0.75; border: 1px solid #6b7280; flex-shrink: 0; }}
  .legend-label {{ font-size: 0.75rem; color: #111827; }}

  /* ── Tooltip ── */
  .mapboxgl-popup-content {{ font-size: 0.8rem; line-height: 1.5; }}
  .mapboxgl-popup-content img {{ display: block; margin-top: 4px; }}
</style>
</head>
<body>

<div id="header">
  <h1>{title}</h1>
  <span class="badge badge-gray">{summary['locations']:,} locations</span>
  <span class="badge badge-amber">{summary['cases']:,} cases</span>
  <span class="badge badge-red">{summary['deaths']:,} deaths</span>
  <span style="font-size:0.72rem;color:#9ca3af;margin-left:auto;">{updated}</span>
</div>

<div id="map"></div>

<div id="legend">
  <h3>Confirmed cases</h3>
{_legend_html()}
</div>

<script>
const POINTS = {points_js};

mapboxgl.accessToken = "{token}";
const map = new mapboxgl.Map({map_js});

// Zoom in / zoom out
map.addControl(new mapboxgl.NavigationControl());

map.once("load", () => {{
  map.addSource("{source_id}", {{type: "geojson", data: POINTS}});
  map.addLayer({layer_js});

  const popup = new mapboxgl.Popup({{closeButton: false, closeOnClick: false}});

  let lastId;

  map.on("mousemove", "{layer_id}", (e) => {{
    const feature = e.features[0];
    const id = feature.properties.id;

    // Rebuild the tooltip only when a different point is hovered
    if (id !== lastId) {{
      lastId = id;
      map.getCanvas().style.cursor = "pointer";

      const coordinates = feature.geometry.coordinates.slice();
      while (Math.abs(e.lngLat.lng - coordinates[0]) > 180) {{
        coordinates[0] += e.lngLat.lng > coordinates[0] ? 360 : -360;
      }}

      popup.setLngLat(coordinates).setHTML(feature.properties.tooltip).addTo(map);
    }}
  }});

  map.on("mouseleave", "{layer_id}", () => {{
    lastId = undefined;
    map.getCanvas().style.cursor = "";
    popup.remove();
  }});
}});
</script>
</body>
</html>"""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate_bubble_map(
    points: Sequence[CasePoint],
    output_path: Path,
    config: Optional[MapboxConfig] = None,
    title: str = "COVID-19 Cases (JHU CSSE)",
) -> Path:
    """
    Generate a self-contained Mapbox GL JS bubble map.

    Args:
        points:      Case points from :meth:`JHUClient.query`.
        output_path: Destination path for the HTML file.
        config:      Optional :class:`MapboxConfig`.
        title:       Page title and header label.

    Returns:
        :class:`~pathlib.Path` to the written HTML file.
    """
    cfg = config or MapboxConfig()
    if not cfg.mapbox_token:
        logger.warning(
            "MAPBOX_TOKEN not set — the map will not render until a "
            "token is provided.  Set MAPBOX_TOKEN in .env or pass it "
            "via MapboxConfig(mapbox_token='pk.xxx…')"
        )
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    summary = summarize(points)
    logger.info(
        f"Generating bubble map: {summary['locations']} locations, "
        f"{summary['cases']:,} cases → {output_path}"
    )

    page = _build_html(
        spec=build_map_spec(points, cfg),
        config=cfg,
        title=title,
        summary=summary,
    )

    with open(output_path, "w", encoding="utf-8") as fh:
        fh.write(page)

    logger.info(
        f"Bubble map saved → {output_path}  "
        f"({output_path.stat().st_size // 1024} KB)"
    )
    return output_path
