
import pytest

from twinadapter.core.capabilities import CapabilityBuilder
from twinadapter.core.errors import PublishError
from twinadapter.core.event_bus import EventBusClient
from twinadapter.core.schemas import RelationshipDescriptor


def test_publish_property_topic_and_payload(bus):
    client = EventBusClient(bus, 'dev1')
    event = client.publish_property('temperature-property-key', 22.5)
    entry = bus.history()[-1]
    assert entry['topic'] == 'dev1/property/temperature-property-key'
    assert entry['payload']['kind'] == 'property'
    assert entry['payload']['value'] == 22.5
    assert entry['payload']['key'] == event.key


def test_wildcard_subscription(bus):
    client = EventBusClient(bus, 'dev1')
    got = []
    token = bus.subscribe('dev1/event/*', lambda topic, msg: got.append((topic, msg['body'])))
    client.publish_property('t', 1.0)
    client.publish_device_event('overheating-event-key', 'normal')
    bus.unsubscribe(token)
    client.publish_device_event('overheating-event-key', 'critical')
    assert got == [('dev1/event/overheating-event-key', 'normal')]


def test_failing_subscriber_does_not_break_publish(bus):
    def boom(topic, msg):
        raise RuntimeError('subscriber down')
    bus.subscribe('*', boom)
    EventBusClient(bus, 'dev1').publish_device_event('e', 'normal')
    assert len(bus.history()) == 1


def test_closed_bus_raises_publish_error(bus):
    bus.close()
    with pytest.raises(PublishError) as exc:
        EventBusClient(bus, 'dev1').publish_property('t', 1.0)
    assert exc.value.topic == 'dev1/property/t'


def test_unserializable_relationship_metadata(bus):
    inst = RelationshipDescriptor(name='insideIn').create_instance('building-hq', {'handle': object()})
    with pytest.raises(PublishError):
        EventBusClient(bus, 'dev1').publish_relationship_instance(inst)
    assert bus.history() == []


def test_history_filters(bus):
    client = EventBusClient(bus, 'dev1')
    for v in (1.0, 2.0, 3.0):
        client.publish_property('t', v)
    client.publish_device_event('e', 'normal')
    props = bus.history(pattern='dev1/property/*')
    assert [e['payload']['value'] for e in props] == [1.0, 2.0, 3.0]
    assert [e['seq'] for e in bus.history(after_seq=2)] == [3, 4]
    assert len(bus.history(limit=2)) == 2


def test_negative_history_limit_rejected(bus):
    EventBusClient(bus, 'dev1').publish_property('t', 1.0)
    with pytest.raises(ValueError):
        bus.history(limit=-1)


def test_undeclared_keys_refused_after_announcement(bus):
    client = EventBusClient(bus, 'dev1')
    client.publish_property('anything', 1.0)  # nothing announced yet

    b = CapabilityBuilder()
    b.add_property('temperature-property-key', 0.0)
    b.add_event('overheating-event-key', 'text/plain')
    client.announce_capabilities(b.build())
    before = len(bus.history(limit=0))

    with pytest.raises(PublishError):
        client.publish_property('humidity-property-key', 40.0)
    with pytest.raises(PublishError):
        client.publish_device_event('smoke-event-key', 'alarm')
    with pytest.raises(PublishError):
        client.publish_relationship_instance(RelationshipDescriptor(name='insideIn').create_instance('building-hq'))
    assert len(bus.history(limit=0)) == before

    client.publish_property('temperature-property-key', 21.0)
    client.publish_device_event('overheating-event-key', 'normal')
    assert len(bus.history(limit=0)) == before + 2
