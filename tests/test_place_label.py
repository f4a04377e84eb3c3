import asyncio
from datetime import timedelta

import config
from services import place_label
from services.place_label import extract_name, qualify_lookup, summarize_lookup
from utils.datetime_helpers import utcnow

LAT, LNG = 36.611158, -93.306554


def lookup(name="Camp Lakeside", place_class="amenity", place_type="restaurant", dlat=0.0):
    return {
        "status": "ok",
        "name": name,
        "class": place_class,
        "type": place_type,
        "target_lat": LAT + dlat,
        "target_lng": LNG,
    }


def test_extract_name_fallbacks():
    assert extract_name({"name": " Lodge "}) == "Lodge"
    assert extract_name({"name": "", "namedetails": {"name:en": "Lake Lodge"}}) == "Lake Lodge"
    assert extract_name({"address": {"shop": "Gas Mart"}}) == "Gas Mart"
    assert extract_name({"display_name": "12 Main St, Branson, MO"}) == "12 Main St"
    assert extract_name({}) is None


def test_summarize_lookup_parses_coordinates():
    summary = summarize_lookup({"name": "Lodge", "lat": "36.6", "lon": "-93.3", "class": "tourism", "type": "hotel"})
    assert summary["target_lat"] == 36.6
    assert summary["target_lng"] == -93.3
    assert summary["class"] == "tourism"


def test_building_within_threshold_is_at():
    label = qualify_lookup(lookup(), LAT, LNG, 10)
    assert label["label"] == "At Camp Lakeside"
    assert label["relation"] == "at"
    assert label["confidence"] == "high"
    assert label["distance_m"] == 0


def test_non_building_is_near():
    label = qualify_lookup(lookup(place_class="highway", place_type="residential"), LAT, LNG, 10)
    assert label["label"] == "Near Camp Lakeside"
    assert label["confidence"] == "medium"


def test_far_places_are_dropped():
    # ~0.0025 deg of latitude is ~280 m, beyond the widest threshold
    assert qualify_lookup(lookup(dlat=0.0025), LAT, LNG, 250) is None


def test_building_between_thresholds_is_near():
    # ~45 m away: beyond the 28 m "at" floor for a precise fix, inside the 55 m "near" floor
    label = qualify_lookup(lookup(dlat=0.0004), LAT, LNG, 5)
    assert label["relation"] == "near"


def test_unnamed_lookup_is_dropped():
    assert qualify_lookup(lookup(name=""), LAT, LNG, 10) is None


def test_resolve_caches_lookups(monkeypatch):
    calls = []

    async def fake_reverse(lat, lng):
        calls.append((lat, lng))
        return {"name": "Camp Lakeside", "class": "tourism", "type": "camp_site", "lat": str(LAT), "lon": str(LNG)}

    monkeypatch.setattr(config, "NOMINATIM_ENABLED", True)
    monkeypatch.setattr(place_label, "reverse_geocode_coords", fake_reverse)
    place_label.clear_cache()

    first = asyncio.run(place_label.resolve(LAT, LNG, 12))
    second = asyncio.run(place_label.resolve(LAT + 0.00001, LNG, 12))

    assert first["label"] == "At Camp Lakeside"
    assert second["name"] == "Camp Lakeside"
    assert len(calls) == 1


def test_resolve_failure_is_cached_as_no_label(monkeypatch):
    calls = []

    async def failing(lat, lng):
        calls.append(1)
        return None

    monkeypatch.setattr(config, "NOMINATIM_ENABLED", True)
    monkeypatch.setattr(place_label, "reverse_geocode_coords", failing)
    place_label.clear_cache()

    assert asyncio.run(place_label.resolve(LAT, LNG)) is None
    assert asyncio.run(place_label.resolve(LAT, LNG)) is None
    assert len(calls) == 1


def test_resolve_disabled(monkeypatch):
    monkeypatch.setattr(config, "NOMINATIM_ENABLED", False)
    assert asyncio.run(place_label.resolve(LAT, LNG)) is None


def test_storing_a_label_drops_expired_entries():
    place_label.clear_cache()
    place_label._cache["place-label:old"] = ({"status": "none"}, utcnow() - timedelta(minutes=1))

    place_label._set_cache("place-label:new", {"status": "none"})

    assert list(place_label._cache) == ["place-label:new"]
