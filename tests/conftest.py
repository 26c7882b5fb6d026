"""Shared fixtures for covid_bubblemap tests."""

import copy

import pytest

from covid_bubblemap.jhu import JHUClient, JHUConfig


# Trimmed disease.sh /v3/covid-19/jhucsse response
SAMPLE_RECORDS = [
    {
        "country": "Canada",
        "province": "Ontario",
        "county": None,
        "updatedAt": "2023-03-10 04:21:03",
        "stats": {"confirmed": 1423566, "deaths": 16157, "recovered": 0},
        "coordinates": {"latitude": "51.2538", "longitude": "-85.3232"},
    },
    {
        "country": "France",
        "province": None,
        "county": None,
        "updatedAt": "2023-03-10 04:21:03",
        "stats": {"confirmed": 38618509, "deaths": 161512, "recovered": 0},
        "coordinates": {"latitude": "46.2276", "longitude": "2.2137"},
    },
    {
        "country": "Canada",
        "province": "Repatriated Travellers",
        "county": None,
        "updatedAt": "2023-03-10 04:21:03",
        "stats": {"confirmed": 13, "deaths": 0, "recovered": 0},
        "coordinates": {"latitude": "", "longitude": ""},
    },
    {
        "country": "Fiji",
        "province": "null",
        "county": None,
        "stats": {"confirmed": 68898, "deaths": 885, "recovered": 0},
        "coordinates": {"latitude": "-17.7134", "longitude": "178.065"},
    },
    {
        "country": "Diamond Princess",
        "province": None,
        "county": None,
        "updatedAt": "2023-03-10 04:21:03",
        "stats": {"confirmed": 712, "deaths": 13, "recovered": 0},
        "coordinates": {"latitude": "0", "longitude": "0"},
    },
]


@pytest.fixture(autouse=True)
def mapbox_env(monkeypatch):
    """Known token, default endpoint."""
    monkeypatch.setenv("MAPBOX_TOKEN", "pk.test-token")
    monkeypatch.delenv("JHU_API_URL", raising=False)


@pytest.fixture
def sample_records():
    return copy.deepcopy(SAMPLE_RECORDS)


@pytest.fixture
def client():
    client = JHUClient(JHUConfig(max_retries=3, retry_delay=0.0))
    yield client
    client.close()


@pytest.fixture
def sample_points(client, sample_records):
    return client.to_points(client.to_dataframe(sample_records))
