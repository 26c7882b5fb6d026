"""
JHU CSSE COVID-19 snapshot client.

Fetches the per-province case snapshot published by Johns Hopkins CSSE through
the public disease.sh API and normalises it into immutable point records.

API Documentation: https://disease.sh/docs/#/COVID-19%3A%20JHUCSSE

Each record in the response looks like:

    {
        "country": "Canada",
        "province": "Ontario",
        "county": null,
        "updatedAt": "2023-03-10 04:21:03",
        "stats": {"confirmed": 1423566, "deaths": 16157, "recovered": 0},
        "coordinates": {"latitude": "51.2538", "longitude": "-85.3232"}
    }

Coordinates arrive as strings and are coerced to floats. No API key required.
"""

import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd
import requests

logger = logging.getLogger(__name__)


DEFAULT_JHU_URL = "https://disease.sh/v3/covid-19/jhucsse"

# Flattened column names produced by pandas.json_normalize
_COLUMNS = {
    "country": "country",
    "province": "province",
    "updatedAt": "updated_at",
    "stats.confirmed": "cases",
    "stats.deaths": "deaths",
    "coordinates.longitude": "longitude",
    "coordinates.latitude": "latitude",
}


@dataclass
class JHUConfig:
    """
    JHU CSSE snapshot API configuration.

    Attributes:
        base_url: Endpoint returning the JSON array of records
                  (JHU_API_URL env var overrides the default)
        timeout: Request timeout in seconds
        max_retries: Maximum retry attempts
        retry_delay: Base delay between retries (seconds)
        user_agent: User-Agent header sent with the request
    """
    base_url: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 3
    retry_delay: float = 2.0
    user_agent: str = "covid-bubblemap/1.0"

    def __post_init__(self):
        if self.base_url is None:
            self.base_url = os.environ.get("JHU_API_URL", DEFAULT_JHU_URL)


@dataclass(frozen=True)
class CasePoint:
    """A single located case count. Immutable once built."""
    id: int
    country: str
    province: Optional[str]
    cases: int
    deaths: int
    longitude: float
    latitude: float
    updated_at: Optional[str] = None

    @property
    def coordinates(self) -> Tuple[float, float]:
        return (self.longitude, self.latitude)

    def to_feature(self) -> Dict:
        properties = asdict(self)
        del properties["longitude"], properties["latitude"]
        return {
            "type": "Feature",
            "geometry": {
                "type": "Point",
                "coordinates": [self.longitude, self.latitude],
            },
            "properties": properties,
        }


class JHUClient:
    """
    Client for the JHU CSSE per-province snapshot.

    Example:
        client = JHUClient()
        points = client.query()
        geojson = client.to_geojson(points)
    """

    def __init__(self, config: Optional[JHUConfig] = None):
        self.config = config or JHUConfig()
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": self.config.user_agent,
            "Accept": "application/json",
        })

    def close(self) -> None:
        self.session.close()

    def fetch_raw(self) -> List[Dict]:
        """
        GET the snapshot with retries.

        Returns:
            List of raw record dicts, in API order

        Raises:
            requests.RequestException: If the last attempt fails
            ValueError: If the payload is not a JSON array
            RuntimeError: If every attempt was rate limited
        """
        for attempt in range(self.config.max_retries):
            try:
                logger.debug(f"JHU request: {self.config.base_url} (attempt {attempt + 1})")

                response = self.session.get(
                    self.config.base_url,
                    timeout=self.config.timeout,
                )

                if response.status_code == 429:
                    delay = float(response.headers.get(
                        "Retry-After",
                        self.config.retry_delay * (2 ** attempt)
                    ))
                    logger.warning(f"Rate limited, waiting {delay}s")
                    time.sleep(delay)
                    continue

                response.raise_for_status()

                data = response.json()

                if not isinstance(data, list):
                    raise ValueError(
                        f"Expected a JSON array from {self.config.base_url}, "
                        f"got {type(data).__name__}"
                    )

                logger.info(f"Retrieved {len(data)} JHU records")
                return data

            except requests.RequestException as e:
                logger.warning(f"Request failed (attempt {attempt + 1}): {e}")
                if attempt < self.config.max_retries - 1:
                    time.sleep(self.config.retry_delay * (attempt + 1))
                    continue
                raise

        raise RuntimeError("Max retries exceeded")

    def to_dataframe(self, records: List[Dict]) -> pd.DataFrame:
        """
        Flatten raw records into a DataFrame.

        The index is the record's position in the API response. Rows whose
        coordinates cannot be parsed are dropped.
        """
        if not records:
            return pd.DataFrame(columns=list(_COLUMNS.values()))

        df = pd.json_normalize(records)
        for column in _COLUMNS:
            if column not in df.columns:
                df[column] = None
        df = df[list(_COLUMNS)].rename(columns=_COLUMNS)

        df["longitude"] = pd.to_numeric(df["longitude"], errors="coerce")
        df["latitude"] = pd.to_numeric(df["latitude"], errors="coerce")
        df["cases"] = pd.to_numeric(df["cases"], errors="coerce").fillna(0).astype(int)
        df["deaths"] = pd.to_numeric(df["deaths"], errors="coerce").fillna(0).astype(int)

        located = df["longitude"].notna() & df["latitude"].notna()
        if not located.all():
            dropped = df.loc[~located, "country"].tolist()
            logger.debug(f"Dropping {len(dropped)} records without coordinates: {dropped}")

        return df[located]

    def to_points(self, df: pd.DataFrame) -> Tuple[CasePoint, ...]:
        """Build immutable records from a normalised DataFrame."""
        points = []
        for index, row in df.iterrows():
            province = row["province"]
            if pd.isna(province) or province == "null":
                province = None

            updated_at = row["updated_at"]
            points.append(CasePoint(
                id=int(index),
                country=str(row["country"]),
                province=province,
                cases=int(row["cases"]),
                deaths=int(row["deaths"]),
                longitude=float(row["longitude"]),
                latitude=float(row["latitude"]),
                updated_at=None if pd.isna(updated_at) else str(updated_at),
            ))
        return tuple(points)

    def query(self) -> Tuple[CasePoint, ...]:
        """Fetch and normalise the current snapshot."""
        records = self.fetch_raw()
        points = self.to_points(self.to_dataframe(records))
        logger.info(f"Normalised {len(points)} located case points")
        return points

    def to_geojson(self, points: Tuple[CasePoint, ...]) -> Dict:
        """
        Convert points to a GeoJSON FeatureCollection.

        Args:
            points: Records from query()

        Returns:
            GeoJSON FeatureCollection
        """
        return {
            "type": "FeatureCollection",
            "features": [point.to_feature() for point in points],
        }


def points_from_geojson(geojson: Dict) -> Tuple[CasePoint, ...]:
    """Rebuild records from a FeatureCollection written by save_geojson()."""
    points = []
    for feature in geojson.get("features", []):
        props = feature.get("properties", {})
        lon, lat = feature["geometry"]["coordinates"][:2]
        points.append(CasePoint(
            id=int(props["id"]),
            country=props.get("country", ""),
            province=props.get("province"),
            cases=int(props.get("cases") or 0),
            deaths=int(props.get("deaths") or 0),
            longitude=float(lon),
            latitude=float(lat),
            updated_at=props.get("updated_at"),
        ))
    return tuple(points)


def query_case_points(config: Optional[JHUConfig] = None) -> Dict:
    """
    High-level function to fetch the snapshot as GeoJSON.

    Args:
        config: Optional JHUConfig

    Returns:
        GeoJSON FeatureCollection with one Point feature per located record
    """
    client = JHUClient(config)
    try:
        return client.to_geojson(client.query())
    finally:
        client.close()


def load_geojson(filepath: Union[str, Path]) -> Dict:
    """Load a GeoJSON FeatureCollection from file."""
    with open(filepath, encoding="utf-8") as f:
        return json.load(f)


def save_geojson(geojson: Dict, filepath: Union[str, Path]) -> None:
    """Save GeoJSON to file."""
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(geojson, f, indent=2)
    logger.info(f"Saved GeoJSON to {filepath}")
