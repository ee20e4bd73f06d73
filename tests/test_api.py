
import pytest
import yaml
from fastapi.testclient import TestClient

from twinadapter.core.adapter_manager import manager
from twinadapter.core.event_bus import InMemoryEventBus
from twinadapter.main import app

ADAPTER_ID = 'demo-physical-adapter'


@pytest.fixture
def client(tmp_path, monkeypatch, wait_for):
    cfg = {
        'adapters': [{
            'id': ADAPTER_ID,
            'kind': 'temperature',
            'module': 'twinadapter.adapters.demo.demo_adapter',
            'class': 'DemoPhysicalAdapter',
            'params': {
                'announce_delay': 0.0,
                'emulation_delay': 0.05,
                'update_interval': 0.01,
                'update_count': 5,
                'relationship_instances': [
                    {'target': 'building-hq', 'metadata': {'floor': 'f0', 'room': 'r0'}},
                ],
            },
        }],
    }
    path = tmp_path / 'adapter.yaml'
    path.write_text(yaml.safe_dump(cfg))
    monkeypatch.setenv('TWINADAPTER_CONFIG', str(path))
    monkeypatch.setattr(manager, 'bus', InMemoryEventBus())
    with TestClient(app) as c:
        assert wait_for(lambda: c.get('/ready').json()['ready'])
        assert wait_for(lambda: manager.bus.history(pattern=f'{ADAPTER_ID}/relationship/*'))
        yield c
    assert manager.adapters == {}


def test_health(client):
    assert client.get('/health').json() == {'status': 'ok'}


def test_list_adapters(client):
    adapters = client.get('/adapters').json()
    assert adapters == [{'id': ADAPTER_ID, 'kind': 'temperature', 'state': 'started', 'bound': True}]


def test_capabilities(client):
    r = client.get(f'/adapters/{ADAPTER_ID}/capabilities')
    assert r.status_code == 200
    body = r.json()
    assert [p['key'] for p in body['properties']] == ['temperature-property-key']
    assert [a['key'] for a in body['actions']] == ['set-temperature-action-key']
    assert client.get('/adapters/missing/capabilities').status_code == 404


def test_actions(client):
    url = f'/adapters/{ADAPTER_ID}/actions'
    ok = client.post(url, json={'key': 'set-temperature-action-key', 'body': 23.5})
    assert ok.json() == {'key': 'set-temperature-action-key', 'accepted': True}
    wrong = client.post(url, json={'key': 'set-temperature-action-key', 'body': 'warm'})
    assert wrong.json()['accepted'] is False
    unknown = client.post(url, json={'key': 'open-door-action-key', 'body': 1.0})
    assert unknown.json()['accepted'] is False


def test_relationships(client):
    r = client.post(f'/adapters/{ADAPTER_ID}/relationships',
                    json={'target': 'building-annex', 'metadata': {'floor': 'f2', 'room': 'r4'}})
    assert r.status_code == 200
    assert r.json()['target'] == 'building-annex'
    assert r.json()['metadata'] == {'floor': 'f2', 'room': 'r4'}

    events = client.get('/events', params={'topic': f'{ADAPTER_ID}/relationship/*'}).json()['messages']
    assert [e['payload']['instance']['target'] for e in events] == ['building-hq', 'building-annex']


def test_event_history_rejects_negative_limit(client):
    assert client.get('/events', params={'limit': -3}).status_code == 422


def test_event_history(client, wait_for):
    def critical():
        msgs = client.get('/events', params={'topic': f'{ADAPTER_ID}/event/*'}).json()['messages']
        return [m['payload']['body'] for m in msgs][-1:] == ['critical']
    assert wait_for(critical)
    props = client.get('/events', params={'topic': f'{ADAPTER_ID}/property/*', 'limit': 0}).json()['messages']
    assert len(props) == 5
    assert all(20.0 <= p['payload']['value'] <= 30.0 for p in props)


def test_ws_poll(client):
    with client.websocket_connect('/ws') as ws:
        ws.send_json({'action': 'subscribe', 'topic': f'{ADAPTER_ID}/relationship/*'})
        assert ws.receive_json() == {'type': 'subscribed', 'topic': f'{ADAPTER_ID}/relationship/*'}
        client.post(f'/adapters/{ADAPTER_ID}/relationships', json={'target': 'building-ws'})
        ws.send_json({'action': 'poll'})
        result = ws.receive_json()
        assert result['type'] == 'poll-result'
        assert [e['payload']['instance']['target'] for e in result['data']] == ['building-ws']
        ws.send_json({'action': 'nope'})
        assert ws.receive_json()['type'] == 'error'
