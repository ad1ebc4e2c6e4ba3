"""
Tests for the sync endpoint:
- POST /sync - Sync a batch of track ids
- GET /health - Liveness and track count
"""

import pytest

from Service import create_app, parse_ids


@pytest.fixture
async def client(aiohttp_client, executor):
    return await aiohttp_client(create_app(executor))


async def test_sync_ok(client, catalog):
    resp = await client.post("/sync", json={"ids": [1, 42]})

    assert resp.status == 200
    assert await resp.json() == {"status": "ok", "added": 2}
    assert len(catalog.tracks) == 2


async def test_sync_accepts_bare_list(client, catalog):
    resp = await client.post("/sync", json=[1])

    assert resp.status == 200
    assert (await resp.json())["added"] == 1


async def test_failed_sync_reports_error(client, catalog):
    resp = await client.post("/sync", json={"ids": [42, -1]})

    assert resp.status == 200
    body = await resp.json()
    assert body["status"] == "error"
    assert body["message"].startswith("Sync failed: ")
    assert catalog.tracks == []


async def test_non_integer_id_is_a_failed_sync(client, catalog):
    resp = await client.post("/sync", json={"ids": ["abc"]})

    assert resp.status == 200
    assert (await resp.json())["status"] == "error"


async def test_invalid_json_is_rejected(client, library):
    resp = await client.post("/sync", data="{nope", headers={"Content-Type": "application/json"})

    assert resp.status == 400
    assert library.calls == []


@pytest.mark.parametrize("payload", [{"ids": 42}, {"tracks": [1]}, "42", {"ids": [2**31]}])
async def test_malformed_payload_is_rejected(client, library, payload):
    resp = await client.post("/sync", json=payload)

    assert resp.status == 400
    assert (await resp.json())["status"] == "error"
    assert library.calls == []


async def test_health(client, catalog):
    await client.post("/sync", json=[1])

    resp = await client.get("/health")

    assert resp.status == 200
    assert await resp.json() == {"status": "ok", "tracks": 1}


def test_parse_ids():
    assert parse_ids({"ids": [1, 2]}) == [1, 2]
    assert parse_ids([3]) == [3]
    assert parse_ids([-(2**31)]) == [-(2**31)]
    with pytest.raises(ValueError):
        parse_ids([2**31])
    with pytest.raises(ValueError):
        parse_ids(None)
