"""
Tests for the AMap provider using httpx's mock transport
"""

import asyncio

import httpx
import pytest

from meowwalker.errors import (
    GeocodingFailure,
    GeocodingTransportError,
    LocationUnavailable,
    NetworkTimeout,
    RoutingFailure,
)
from meowwalker.geocoding.amap_client import AMapProvider

LOCATIONS = {
    "Home": "121.445,31.223",
    "Client": "121.437,31.195",
}


class FakeAMap:
    """Routes requests to canned AMap responses and records them"""

    def __init__(self, key_ok=True, route=None, tips=None, regeo=None):
        self.key_ok = key_ok
        self.route = route if route is not None else {
            "errcode": 0,
            "data": {"paths": [{"distance": "2340", "duration": "601"}]},
        }
        self.tips = tips or []
        self.regeo = regeo
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path == "/v3/ip":
            status = "1" if self.key_ok else "0"
            return httpx.Response(200, json={"status": status, "info": "INVALID_USER_KEY"})
        if path == "/v3/geocode/geo":
            location = LOCATIONS.get(params["address"])
            if location is None:
                return httpx.Response(200, json={"status": "1", "count": "0", "geocodes": []})
            return httpx.Response(200, json={"status": "1", "geocodes": [{"location": location}]})
        if path == "/v4/direction/bicycling":
            return httpx.Response(200, json=self.route)
        if path == "/v3/assistant/inputtips":
            return httpx.Response(200, json={"status": "1", "tips": self.tips})
        if path == "/v3/geocode/regeo":
            return httpx.Response(200, json=self.regeo or {"status": "0"})
        return httpx.Response(404)

    def paths(self):
        return [request.url.path for request in self.requests]


def make_provider(handler, verify_key=True, timeout=5.0) -> AMapProvider:
    return AMapProvider(
        api_key="test-key",
        base_url="https://restapi.amap.com",
        city="上海",
        timeout=timeout,
        verify_key=verify_key,
        transport=httpx.MockTransport(handler),
    )


class TestResolveDistance:
    @pytest.mark.asyncio
    async def test_cycling_distance(self):
        amap = FakeAMap()
        provider = make_provider(amap)

        result = await provider.resolve_distance("Home", "Client")
        await provider.close()

        assert result.distance_km == 2.34
        assert result.duration_min == 11
        route_request = amap.requests[-1]
        assert route_request.url.params["origin"] == LOCATIONS["Home"]
        assert route_request.url.params["destination"] == LOCATIONS["Client"]
        assert route_request.url.params["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_key_checked_once(self):
        amap = FakeAMap()
        provider = make_provider(amap)

        await provider.resolve_distance("Home", "Client")
        await provider.resolve_distance("Client", "Home")
        await provider.close()

        assert amap.paths().count("/v3/ip") == 1

    @pytest.mark.asyncio
    async def test_unknown_address(self):
        provider = make_provider(FakeAMap())

        with pytest.raises(GeocodingFailure) as exc_info:
            await provider.resolve_distance("Home", "Atlantis")
        await provider.close()

        assert exc_info.value.address == "Atlantis"

    @pytest.mark.asyncio
    async def test_route_error(self):
        provider = make_provider(FakeAMap(route={"errcode": 30001, "errmsg": "too far"}))

        with pytest.raises(RoutingFailure):
            await provider.resolve_distance("Home", "Client")
        await provider.close()

    @pytest.mark.asyncio
    async def test_no_paths(self):
        provider = make_provider(FakeAMap(route={"errcode": 0, "data": {"paths": []}}))

        with pytest.raises(RoutingFailure):
            await provider.resolve_distance("Home", "Client")
        await provider.close()

    @pytest.mark.asyncio
    async def test_rejected_key_is_retried_next_time(self):
        amap = FakeAMap(key_ok=False)
        provider = make_provider(amap)

        with pytest.raises(GeocodingTransportError):
            await provider.resolve_distance("Home", "Client")
        amap.key_ok = True
        result = await provider.resolve_distance("Home", "Client")
        await provider.close()

        assert result.distance_km == 2.34
        assert amap.paths().count("/v3/ip") == 2

    @pytest.mark.asyncio
    async def test_server_error(self):
        provider = make_provider(lambda request: httpx.Response(500), verify_key=False)

        with pytest.raises(GeocodingTransportError):
            await provider.resolve_distance("Home", "Client")
        await provider.close()

    @pytest.mark.asyncio
    async def test_request_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        provider = make_provider(handler, verify_key=False)

        with pytest.raises(NetworkTimeout):
            await provider.resolve_distance("Home", "Client")
        await provider.close()

    @pytest.mark.asyncio
    async def test_hard_timeout(self):
        async def slow_handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={})

        provider = make_provider(slow_handler, verify_key=False, timeout=0.05)

        with pytest.raises(NetworkTimeout):
            await provider.resolve_distance("Home", "Client")
        await provider.close()


class TestSearchAddresses:
    @pytest.mark.asyncio
    async def test_filters_tips_without_location(self):
        tips = [
            {"id": "B0FF", "name": "静安寺", "district": "上海市静安区", "address": "南京西路1686号", "location": "121.44,31.22"},
            {"id": [], "name": "静安寺站公交", "district": "上海市静安区", "address": [], "location": []},
            {"id": "B0GG", "name": "静安公园", "district": "上海市静安区", "address": [], "location": "121.45,31.22"},
        ]
        amap = FakeAMap(tips=tips)
        provider = make_provider(amap)

        places = await provider.search_addresses("静安")
        await provider.close()

        assert [(p.name, p.address) for p in places] == [
            ("静安寺", "上海市静安区南京西路1686号"),
            ("静安公园", "上海市静安区"),
        ]
        assert amap.requests[-1].url.params["city"] == "上海"

    @pytest.mark.asyncio
    async def test_blank_query(self):
        amap = FakeAMap()
        provider = make_provider(amap)

        assert await provider.search_addresses("   ") == []
        assert amap.requests == []

    @pytest.mark.asyncio
    async def test_errors_give_empty_list(self):
        provider = make_provider(lambda request: httpx.Response(500), verify_key=False)

        assert await provider.search_addresses("静安") == []
        await provider.close()


class TestAddressForLocation:
    @pytest.mark.asyncio
    async def test_reverse_geocode(self):
        amap = FakeAMap(
            regeo={"status": "1", "regeocode": {"formatted_address": "上海市静安区南京西路"}}
        )
        provider = make_provider(amap)

        address = await provider.address_for_location(31.223, 121.445)
        await provider.close()

        assert address == "上海市静安区南京西路"
        assert amap.requests[-1].url.params["location"] == "121.445000,31.223000"

    @pytest.mark.asyncio
    async def test_unresolvable_location(self):
        provider = make_provider(FakeAMap())

        with pytest.raises(LocationUnavailable):
            await provider.address_for_location(0.0, 0.0)
        await provider.close()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        provider = make_provider(lambda request: httpx.Response(502), verify_key=False)

        with pytest.raises(LocationUnavailable):
            await provider.address_for_location(31.2, 121.4)
        await provider.close()
