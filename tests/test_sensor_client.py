from __future__ import annotations

import httpx
import pytest

from services.sensor_client import PurpleAirClient, SensorFetchError


def test_fetch_requests_all_sensors_in_one_call(make_result) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"results": [make_result(), make_result(ID=1002, ParentID=1001)]})

    client = PurpleAirClient("https://example.test/json", transport=httpx.MockTransport(handler))
    try:
        payload = client.fetch([1001, 2002])
    finally:
        client.close()

    assert len(seen) == 1
    assert seen[0].url.params["show"] == "1001|2002"
    assert [reading.sensor_id for reading in payload.readings()] == [1001, 1002]


def test_fetch_without_sensors_fails() -> None:
    client = PurpleAirClient("https://example.test/json")
    with pytest.raises(SensorFetchError, match="No sensors"):
        client.fetch([])
    client.close()


def test_non_ok_status_raises(make_transport) -> None:
    client = PurpleAirClient("https://example.test/json", transport=make_transport({}, status_code=503))

    with pytest.raises(SensorFetchError, match="status code 503"):
        client.fetch([1])


def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = PurpleAirClient("https://example.test/json", transport=httpx.MockTransport(handler))

    with pytest.raises(SensorFetchError, match="connection refused"):
        client.fetch([1])


def test_malformed_json_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    client = PurpleAirClient("https://example.test/json", transport=httpx.MockTransport(handler))

    with pytest.raises(SensorFetchError, match="Unable to decode"):
        client.fetch([1])


def test_invalid_reading_is_wrapped(make_result, make_transport) -> None:
    transport = make_transport({"results": [make_result(pm2_5_cf_1="bad")]})
    client = PurpleAirClient("https://example.test/json", transport=transport)

    with pytest.raises(SensorFetchError, match="Unable to decode"):
        client.fetch([1])
