"""Shared fixtures: a small three-traveler trip in every expense category."""

import copy

import pytest

from trip_budget.migration import migrate_state


RAW_TRIP = {
    "version": 1,
    "travelers": [
        {"id": "a", "name": "Ana"},
        {"id": "b", "name": "Ben"},
        {"id": "c", "name": "Cleo"},
    ],
    "dailySharedExpenses": [
        {
            "id": "hotel",
            "name": "Hotel",
            "currency": "USD",
            "totalCost": 300,
            "startDate": "2024-01-01",
            "endDate": "2024-01-04",
            "splitMode": "dailyOccupancy",
        },
    ],
    "dailyPersonalExpenses": [
        {
            "id": "pass",
            "name": "Metro pass",
            "currency": "EUR",
            "dailyCost": 8,
            "startDate": "2024-01-01",
            "endDate": "2024-01-04",
        },
    ],
    "oneTimeSharedExpenses": [
        {"id": "taxi", "name": "Airport taxi", "currency": "USD", "totalCost": 90},
    ],
    "oneTimePersonalExpenses": [
        {"id": "museum", "name": "Museum", "currency": "GBP", "totalCost": 20},
    ],
    "usageCosts": {
        "oneTimeShared": {"taxi": ["a", "b", "c"]},
        "oneTimePersonal": {"museum": ["a", "b"]},
        "days": {
            "2024-01-01": {"dailyShared": {"hotel": ["a", "b"]}, "dailyPersonal": {"pass": ["a"]}},
            "2024-01-02": {"dailyShared": {"hotel": ["a"]}, "dailyPersonal": {"pass": ["a", "b"]}},
            "2024-01-03": {"dailyShared": {"hotel": ["b"]}, "dailyPersonal": {}},
        },
    },
    "startDate": "2024-01-01",
    "endDate": "2024-01-04",
    "displayCurrency": "USD",
}


@pytest.fixture
def raw_trip():
    """A fresh copy of the raw camelCase trip document."""
    return copy.deepcopy(RAW_TRIP)


@pytest.fixture
def trip_state(raw_trip):
    """The raw trip, migrated."""
    return migrate_state(raw_trip)


@pytest.fixture
def rates():
    """Units per 1 USD."""
    return {"USD": 1.0, "EUR": 0.8, "GBP": 0.5}
