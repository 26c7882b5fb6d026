"""Tests for the JHU CSSE snapshot client and record normalisation."""

import dataclasses
from unittest.mock import Mock, patch

import pytest
import requests

from covid_bubblemap.jhu import (
    DEFAULT_JHU_URL,
    CasePoint,
    JHUConfig,
    load_geojson,
    points_from_geojson,
    query_case_points,
    save_geojson,
)


def _response(payload, status_code=200, headers=None):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload
    if status_code >= 400 and status_code != 429:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    else:
        response.raise_for_status.return_value = None
    return response


class TestJHUConfig:

    def test_default_url(self):
        assert JHUConfig().base_url == DEFAULT_JHU_URL

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("JHU_API_URL", "https://mirror.example/jhucsse")
        assert JHUConfig().base_url == "https://mirror.example/jhucsse"

    def test_explicit_url_wins(self, monkeypatch):
        monkeypatch.setenv("JHU_API_URL", "https://mirror.example/jhucsse")
        assert JHUConfig(base_url="http://local/api").base_url == "http://local/api"


class TestNormalisation:

    def test_drops_records_without_coordinates(self, sample_points):
        assert [p.id for p in sample_points] == [0, 1, 3, 4]

    def test_fields(self, sample_points):
        ontario = sample_points[0]
        assert isinstance(ontario, CasePoint)
        assert ontario.id == 0
        assert ontario.country == "Canada"
        assert ontario.province == "Ontario"
        assert ontario.cases == 1423566
        assert ontario.deaths == 16157
        assert ontario.coordinates == pytest.approx((-85.3232, 51.2538))
        assert ontario.updated_at == "2023-03-10 04:21:03"

    def test_null_province(self, sample_points):
        by_country = {p.country: p for p in sample_points}
        assert by_country["France"].province is None
        assert by_country["Fiji"].province is None

    def test_missing_updated_at(self, sample_points):
        fiji = next(p for p in sample_points if p.country == "Fiji")
        assert fiji.updated_at is None

    def test_missing_stats_default_to_zero(self, client):
        df = client.to_dataframe([
            {"country": "Nowhere", "province": None,
             "coordinates": {"latitude": "1.5", "longitude": "2.5"}},
        ])
        (point,) = client.to_points(df)
        assert point.cases == 0
        assert point.deaths == 0

    def test_empty_payload(self, client):
        assert client.to_points(client.to_dataframe([])) == ()

    def test_points_are_immutable(self, sample_points):
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample_points[0].cases = 1

    def test_to_geojson(self, client, sample_points):
        fc = client.to_geojson(sample_points)
        assert fc["type"] == "FeatureCollection"
        assert len(fc["features"]) == 4
        feature = fc["features"][0]
        assert feature["geometry"]["type"] == "Point"
        assert feature["geometry"]["coordinates"] == pytest.approx([-85.3232, 51.2538])
        assert feature["properties"] == {
            "id": 0,
            "country": "Canada",
            "province": "Ontario",
            "cases": 1423566,
            "deaths": 16157,
            "updated_at": "2023-03-10 04:21:03",
        }

    def test_geojson_file_roundtrip(self, client, sample_points, tmp_path):
        path = tmp_path / "points.geojson"
        save_geojson(client.to_geojson(sample_points), path)
        assert points_from_geojson(load_geojson(path)) == sample_points


class TestFetch:

    def test_query(self, client, sample_records):
        with patch.object(client.session, "get", return_value=_response(sample_records)) as get:
            points = client.query()
        get.assert_called_once_with(DEFAULT_JHU_URL, timeout=client.config.timeout)
        assert len(points) == 4

    def test_each_query_builds_a_new_collection(self, client, sample_records):
        with patch.object(client.session, "get", return_value=_response(sample_records)):
            first = client.query()
        with patch.object(client.session, "get", return_value=_response(sample_records[:1])):
            second = client.query()
        assert len(first) == 4
        assert len(second) == 1

    def test_retries_on_connection_error(self, client, sample_records):
        side_effect = [requests.ConnectionError("boom"), _response(sample_records)]
        with patch.object(client.session, "get", side_effect=side_effect) as get, \
                patch("covid_bubblemap.jhu.time.sleep"):
            records = client.fetch_raw()
        assert get.call_count == 2
        assert len(records) == len(sample_records)

    def test_raises_after_last_attempt(self, client):
        with patch.object(client.session, "get", side_effect=requests.ConnectionError("down")) as get, \
                patch("covid_bubblemap.jhu.time.sleep"):
            with pytest.raises(requests.ConnectionError):
                client.fetch_raw()
        assert get.call_count == client.config.max_retries

    def test_http_error_propagates(self, client):
        with patch.object(client.session, "get", return_value=_response({}, status_code=500)), \
                patch("covid_bubblemap.jhu.time.sleep"):
            with pytest.raises(requests.HTTPError):
                client.fetch_raw()

    def test_rate_limit_waits_and_retries(self, client, sample_records):
        side_effect = [
            _response(None, status_code=429, headers={"Retry-After": "7"}),
            _response(sample_records),
        ]
        with patch.object(client.session, "get", side_effect=side_effect), \
                patch("covid_bubblemap.jhu.time.sleep") as sleep:
            records = client.fetch_raw()
        sleep.assert_called_once_with(7.0)
        assert len(records) == len(sample_records)

    def test_rate_limited_every_attempt(self, client):
        with patch.object(client.session, "get",
                          return_value=_response(None, status_code=429)), \
                patch("covid_bubblemap.jhu.time.sleep"):
            with pytest.raises(RuntimeError, match="Max retries exceeded"):
                client.fetch_raw()

    def test_non_list_payload(self, client):
        with patch.object(client.session, "get", return_value=_response({"message": "nope"})):
            with pytest.raises(ValueError, match="JSON array"):
                client.fetch_raw()

    def test_query_case_points(self, sample_records):
        with patch("covid_bubblemap.jhu.requests.Session.get",
                   return_value=_response(sample_records)):
            fc = query_case_points(JHUConfig())
        assert [f["properties"]["id"] for f in fc["features"]] == [0, 1, 3, 4]
