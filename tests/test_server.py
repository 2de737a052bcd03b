"""End-to-end tests for the wifiswitch listener and sessions."""

import asyncio
import logging

import pytest
from aiohttp import WSMsgType, WSServerHandshakeError

from wifiswitch_mock.const import PROTOCOL
from wifiswitch_mock.server import SESSIONS_KEY
from wifiswitch_mock.session import SessionState

from .conftest import FAST_PUSH_INTERVAL


async def _wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


async def test_plain_http_gets_404(aiohttp_client, make_app):
    client = await aiohttp_client(make_app())
    resp = await client.get("/")
    assert resp.status == 404
    resp = await client.post("/rest/gpios", json={"4": 1})
    assert resp.status == 404


async def test_subprotocol_negotiated(aiohttp_client, make_app):
    client = await aiohttp_client(make_app())
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))
    assert ws.protocol == PROTOCOL
    await ws.close()


async def test_end_to_end(aiohttp_client, make_app):
    client = await aiohttp_client(make_app())
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))

    await ws.send_str('{"type":"fw","mode":"ap"}')
    assert await ws.receive_json(timeout=1) == {"type": "fw", "mode": "ap", "ver": "1.0.1"}

    await ws.send_str('{"type":"gpio","4":1}')
    reply = await ws.receive_json(timeout=1)
    assert reply["type"] == "gpio"
    assert reply["gpios"] == [4, 5, 9]
    assert reply["4"] == 1

    await ws.close()


async def test_state_shared_between_connections(aiohttp_client, make_app):
    client = await aiohttp_client(make_app())
    first = await client.ws_connect("/", protocols=(PROTOCOL,))
    second = await client.ws_connect("/", protocols=(PROTOCOL,))

    await first.send_json({"type": "fw", "mode": "ap"})
    await first.receive_json(timeout=1)
    await second.send_json({"type": "fw"})
    assert (await second.receive_json(timeout=1))["mode"] == "ap"

    await first.close()
    await second.close()


async def test_malformed_input_keeps_connection(aiohttp_client, make_app):
    client = await aiohttp_client(make_app())
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))

    await ws.send_str("not json")
    await ws.send_str('{"no":"type"}')
    await ws.send_str('{"type":"reboot"}')
    await ws.send_bytes(b'{"type":"fw"}')
    await ws.send_str('{"type":"networks"}')

    # The first frame back must be the networks reply: nothing else answered
    reply = await ws.receive_json(timeout=1)
    assert reply == {
        "type": "networks",
        "ssids": ["testAP", "PrettyFlyForAWIFI", "NewAdventuresInWIFI"],
    }
    assert not ws.closed
    await ws.close()


async def test_parser_limits_keep_connection(aiohttp_client, make_app):
    client = await aiohttp_client(make_app())
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))

    await ws.send_str('{"type":"fw","x":' + "1" * 5000 + "}")
    await ws.send_str("[" * 100000 + "]" * 100000)
    await ws.send_str('{"type":"gpio","' + "1" * 5000 + '":1}')
    await ws.send_str('{"type":"networks"}')

    # The oversized pin name is ignored, so the gpio reply comes first
    reply = await ws.receive_json(timeout=1)
    assert reply == {"type": "gpio", "gpios": [4, 5, 9]}
    reply = await ws.receive_json(timeout=1)
    assert reply["type"] == "networks"
    assert not ws.closed
    await ws.close()


async def test_bad_frames_are_logged(aiohttp_client, make_app, caplog):
    client = await aiohttp_client(make_app())
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))

    with caplog.at_level(logging.WARNING):
        await ws.send_str("not json")
        await ws.send_bytes(b"\x00\x01")
        await ws.send_str('{"type":"reboot"}')
        await ws.send_str('{"type":"networks"}')
        await ws.receive_json(timeout=1)

    messages = " ".join(record.getMessage() for record in caplog.records)
    assert "Could not parse request" in messages
    assert "I only understand text data" in messages
    assert "Unknown wifiswitch request: 'reboot'" in messages
    await ws.close()


async def test_idle_connection_gets_pushes(aiohttp_client, make_app, store):
    client = await aiohttp_client(make_app(push_interval=FAST_PUSH_INTERVAL))
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))

    for _ in range(3):
        push = await ws.receive_json(timeout=1)
        assert set(push) == {"type", "5"}
        assert push["type"] == "gpio"
        assert push["5"] in (0, 1)

    assert store.get_state().gpio_values[5] in (0, 1)
    await ws.close()


async def test_push_lands_in_next_gpio_reply(aiohttp_client, make_app):
    client = await aiohttp_client(make_app(push_interval=FAST_PUSH_INTERVAL))
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))

    push = await ws.receive_json(timeout=1)
    await ws.send_json({"type": "gpio"})
    while True:
        reply = await ws.receive_json(timeout=1)
        if "gpios" in reply:
            break
        push = reply
    assert reply["5"] == push["5"]
    await ws.close()


async def test_close_cancels_push_timer(aiohttp_client, make_app):
    app = make_app(push_interval=FAST_PUSH_INTERVAL)
    client = await aiohttp_client(app)
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))
    await ws.receive_json(timeout=1)

    (session,) = list(app[SESSIONS_KEY])
    push_task = session._push_task
    assert session.state == SessionState.OPEN

    await ws.close()
    assert await _wait_until(lambda: session.state == SessionState.CLOSED)
    assert push_task.done()
    assert await _wait_until(lambda: len(app[SESSIONS_KEY]) == 0)


async def test_rejected_origin(aiohttp_client, make_app):
    app = make_app(origin_policy=lambda origin: origin != "http://evil.example")
    client = await aiohttp_client(app)

    with pytest.raises(WSServerHandshakeError) as exc_info:
        await client.ws_connect(
            "/", protocols=(PROTOCOL,), headers={"Origin": "http://evil.example"}
        )
    assert exc_info.value.status == 403
    assert len(app[SESSIONS_KEY]) == 0

    ws = await client.ws_connect(
        "/", protocols=(PROTOCOL,), headers={"Origin": "http://good.example"}
    )
    await ws.send_json({"type": "fw"})
    assert (await ws.receive_json(timeout=1))["type"] == "fw"
    await ws.close()


async def test_shutdown_closes_sessions(aiohttp_client, make_app):
    app = make_app()
    client = await aiohttp_client(app)
    ws = await client.ws_connect("/", protocols=(PROTOCOL,))
    assert await _wait_until(lambda: len(app[SESSIONS_KEY]) == 1)
    (session,) = list(app[SESSIONS_KEY])

    await app.shutdown()

    msg = await ws.receive(timeout=1)
    assert msg.type in (WSMsgType.CLOSE, WSMsgType.CLOSED)
    assert session.state == SessionState.CLOSED
    assert await _wait_until(lambda: session._push_task is None)
