"""
Run configuration for the bubble map build.

Can be loaded from a YAML file or set programmatically. API settings fall
back to environment variables (JHU_API_URL, MAPBOX_TOKEN).

Example YAML:

    api:
      url: https://disease.sh/v3/covid-19/jhucsse
      timeout: 30
      max_retries: 3
    map:
      mapbox_token: pk.xxx
      style: mapbox://styles/mapbox/streets-v9
      center: [16, 27]
      zoom: 2
      title: COVID-19 Cases (JHU CSSE)
    output:
      html: ./output/bubble_map.html
      geojson: ./output/case_points.geojson
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from .jhu import JHUConfig
from .mapbox import MapboxConfig

logger = logging.getLogger(__name__)


@dataclass
class BubbleMapConfig:
    """
    Bubble map build configuration.

    Attributes:
        api: JHU snapshot API settings
        map: Mapbox rendering settings
        title: Page title and header label
        output_html: Where the HTML app is written
        output_geojson: Optional path for the normalised GeoJSON snapshot
    """
    api: JHUConfig = field(default_factory=JHUConfig)
    map: Optional[MapboxConfig] = None
    title: str = "COVID-19 Cases (JHU CSSE)"
    output_html: Union[str, Path] = "./output/bubble_map.html"
    output_geojson: Optional[Union[str, Path]] = None

    def __post_init__(self):
        if self.map is None:
            self.map = MapboxConfig()
        self.output_html = Path(self.output_html)
        if self.output_geojson is not None:
            self.output_geojson = Path(self.output_geojson)

    @classmethod
    def from_yaml(cls, filepath: Union[str, Path]) -> "BubbleMapConfig":
        """Load configuration from YAML file."""
        with open(filepath) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {filepath} must contain a mapping")

        api_data = data.get("api") or {}
        api_kwargs = {}
        if "url" in api_data:
            api_kwargs["base_url"] = api_data["url"]
        for key in ("timeout", "max_retries", "retry_delay"):
            if key in api_data:
                api_kwargs[key] = api_data[key]

        map_data = data.get("map") or {}
        map_kwargs = {}
        if "mapbox_token" in map_data:
            map_kwargs["mapbox_token"] = map_data["mapbox_token"]
        if "style" in map_data:
            map_kwargs["map_style"] = map_data["style"]
        if "center" in map_data:
            map_kwargs["initial_center"] = tuple(map_data["center"])
        if "zoom" in map_data:
            map_kwargs["initial_zoom"] = float(map_data["zoom"])
        if "flag_url_template" in map_data:
            map_kwargs["flag_url_template"] = map_data["flag_url_template"]

        config_data = {
            "api": JHUConfig(**api_kwargs),
            "map": MapboxConfig(**map_kwargs),
        }
        if "title" in map_data:
            config_data["title"] = map_data["title"]

        output_data = data.get("output") or {}
        if "html" in output_data:
            config_data["output_html"] = output_data["html"]
        if output_data.get("geojson"):
            config_data["output_geojson"] = output_data["geojson"]

        logger.debug(f"Loaded configuration from {filepath}")
        return cls(**config_data)
