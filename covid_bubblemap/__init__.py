"""
COVID-19 Case Bubble Map

Fetches the JHU CSSE per-province COVID-19 snapshot and renders it as a
colour/size-scaled Mapbox GL JS bubble map with hover tooltips.

Quick Start:
    from covid_bubblemap import build_bubble_map

    # Fetch the snapshot and write ./output/bubble_map.html
    path = build_bubble_map()

    # Or step by step
    from covid_bubblemap import JHUClient, generate_bubble_map

    client = JHUClient()
    points = client.query()
    generate_bubble_map(points, output_path="site/index.html")

Modules:
    - jhu: JHU CSSE snapshot client and immutable case records
    - countries: Country name to ISO code lookup for tooltip flags
    - style: Circle paint ramps keyed by case count
    - tooltip: Tooltip content, mortality rate, longitude wrap, hover guard
    - mapbox: Mapbox GL JS web app generator
    - config: YAML / environment configuration
    - pipeline: Build orchestration and command-line entry point

Environment Variables:
    MAPBOX_TOKEN: Mapbox public token (required for the map to render)
    JHU_API_URL: Snapshot endpoint override (optional)
"""

__version__ = "1.0.0"

from .jhu import (
    JHUClient,
    JHUConfig,
    CasePoint,
    query_case_points,
    points_from_geojson,
    load_geojson,
    save_geojson,
)
from .countries import country_iso2, flag_url
from .style import circle_paint, evaluate_stops, interpolate_expression, legend_entries
from .tooltip import (
    HoverTracker,
    Tooltip,
    build_tooltip_html,
    format_mortality_rate,
    mortality_rate,
    wrap_longitude,
)
from .mapbox import MapboxConfig, build_map_spec, generate_bubble_map
from .config import BubbleMapConfig
from .pipeline import build_bubble_map

__all__ = [
    "__version__",
    # JHU
    "JHUClient", "JHUConfig", "CasePoint",
    "query_case_points", "points_from_geojson", "load_geojson", "save_geojson",
    # Countries
    "country_iso2", "flag_url",
    # Style
    "circle_paint", "evaluate_stops", "interpolate_expression", "legend_entries",
    # Tooltip
    "HoverTracker", "Tooltip", "build_tooltip_html",
    "format_mortality_rate", "mortality_rate", "wrap_longitude",
    # Mapbox
    "MapboxConfig", "build_map_spec", "generate_bubble_map",
    # Build
    "BubbleMapConfig", "build_bubble_map",
]
