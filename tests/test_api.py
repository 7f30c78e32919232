# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from hopwatch.monitor import Monitor
from web.api import create_app


@pytest.fixture
def monitor(config, fake_transport, target):
    m = Monitor(config, transport=fake_transport, targets=[target], detect_origin=False)
    m.discovery.run_pass()
    m.aggregator.drain(m.queue)
    m.pinger.run_tick(0)
    m.aggregator.drain(m.queue)
    yield m
    m.stop()


def test_snapshot(monitor):
    with TestClient(create_app(monitor)) as client:
        data = client.get("/api/snapshot").json()
    assert data['tick'] == 0
    assert data['origin']['label'] == "Your device"
    target = data['targets'][0]
    assert target['name'] == "example.test"
    assert len(target['series']) == 4
    assert target['series'][0]['samples'][0]['rtt_ms'] == 20.0


def test_estimate(monitor):
    with TestClient(create_app(monitor)) as client:
        resp = client.get("/api/targets/example.test/estimate")
        missing = client.get("/api/targets/other.test/estimate")
    assert resp.status_code == 200
    assert [e['grade'] for e in resp.json()] == ["good"] * 4
    assert missing.status_code == 404


def test_dashboard_page(monitor):
    with TestClient(create_app(monitor)) as client:
        resp = client.get("/")
    assert resp.status_code == 200
    assert "hopwatch" in resp.text


def test_websocket_receives_update(monitor):
    with TestClient(create_app(monitor)) as client:
        with client.websocket_connect("/ws") as ws:
            data = ws.receive_json()
    assert data['type'] == "update"
    assert data['targets'][0]['name'] == "example.test"
