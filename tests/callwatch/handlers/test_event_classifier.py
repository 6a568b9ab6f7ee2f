"""Unit tests for the event classifier.

Covers every row of the classification table, the Malformed/Unclassified
fallbacks and custom rule registration.
"""

import pytest

from callwatch.handlers.event_classifier import (
    ClassificationRule,
    EventClassifier,
    classify_event,
)
from callwatch.models.call_events import (
    CallEventKind,
    ChannelAnswered,
    ChannelBridged,
    ChannelCreated,
    ChannelHungUp,
    ChannelTrying,
    GatewayStateChanged,
    HeartbeatStat,
    Malformed,
    Unclassified,
)
from callwatch.models.esl_api import EventField

CHANNEL_BASE = {
    "Event-Date-GMT": "Mon, 19 Oct 2026 10:00:00 GMT",
    "Channel-Call-UUID": "uuid-1",
    "Call-Direction": "inbound",
    "Channel-Name": "sofia/internal/1000@pbx",
}

CALLER_BASE = {
    **CHANNEL_BASE,
    "Caller-Caller-ID-Name": "Bob",
    "Caller-Caller-ID-Number": "1000",
}


class TestUnclassified:
    """Records that no rule claims."""

    @pytest.mark.parametrize(
        "record",
        [
            {},
            {"Channel-Call-UUID": "uuid-1"},
            {"Event-Subclass": "sofia::gateway_state", "Gateway": "gw"},
        ],
    )
    def test_missing_event_name(self, record):
        event = classify_event(record)
        assert isinstance(event, Unclassified)
        assert event.event_name is None
        assert event.record == record

    def test_unknown_event_name_keeps_record(self):
        record = {"Event-Name": "RE_SCHEDULE", "Task-ID": "3"}
        event = classify_event(record)
        assert isinstance(event, Unclassified)
        assert event.event_name == "RE_SCHEDULE"
        assert event.record == record

    def test_custom_with_unknown_subclass(self):
        record = {"Event-Name": "CUSTOM", "Event-Subclass": "sofia::register"}
        event = classify_event(record)
        assert isinstance(event, Unclassified)
        assert event.event_name == "CUSTOM"

    def test_custom_without_subclass(self):
        assert isinstance(classify_event({"Event-Name": "CUSTOM"}), Unclassified)

    def test_record_is_copied(self):
        record = {"Event-Name": "API"}
        event = classify_event(record)
        record["Event-Name"] = "CHANGED"
        assert event.record["Event-Name"] == "API"


class TestChannelCreate:
    def test_inbound(self):
        record = {"Event-Name": "CHANNEL_CREATE", **CHANNEL_BASE}
        event = classify_event(record)
        assert event == ChannelCreated(
            timestamp=CHANNEL_BASE["Event-Date-GMT"],
            call_id="uuid-1",
            direction="inbound",
            channel_name="sofia/internal/1000@pbx",
        )

    @pytest.mark.parametrize("direction", ["outbound", "INBOUND", ""])
    def test_not_inbound_is_not_created(self, direction):
        record = {"Event-Name": "CHANNEL_CREATE", **CHANNEL_BASE, "Call-Direction": direction}
        event = classify_event(record)
        assert not isinstance(event, ChannelCreated)
        assert isinstance(event, Unclassified)

    def test_missing_direction_is_unclassified(self):
        record = {"Event-Name": "CHANNEL_CREATE", **CHANNEL_BASE}
        del record["Call-Direction"]
        assert isinstance(classify_event(record), Unclassified)

    def test_inbound_missing_channel_name_is_malformed(self):
        record = {"Event-Name": "CHANNEL_CREATE", **CHANNEL_BASE}
        del record["Channel-Name"]
        event = classify_event(record)
        assert isinstance(event, Malformed)
        assert event.missing == ["Channel-Name"]


class TestCallerChannelEvents:
    def test_answer_example(self, answer_record):
        event = classify_event(answer_record)
        assert event == ChannelAnswered(
            timestamp="Mon, 19 Oct 2026 10:00:00 GMT",
            call_id="6a7b2c1e-0d3f-4e5a-9b8c-7d6e5f4a3b2c",
            direction="outbound",
            channel_name="sofia/external/1001@pbx.example.com",
            caller_name="Alice",
            caller_number="1001",
        )

    @pytest.mark.parametrize(
        "event_name,expected_class",
        [
            ("CHANNEL_OUTGOING", ChannelTrying),
            ("CHANNEL_ANSWER", ChannelAnswered),
            ("CHANNEL_BRIDGE", ChannelBridged),
        ],
    )
    def test_variant_per_event_name(self, event_name, expected_class):
        event = classify_event({"Event-Name": event_name, **CALLER_BASE})
        assert type(event) is expected_class
        assert event.caller_name == "Bob"
        assert event.caller_number == "1000"

    def test_missing_caller_fields_is_malformed(self):
        record = {"Event-Name": "CHANNEL_BRIDGE", **CHANNEL_BASE}
        event = classify_event(record)
        assert isinstance(event, Malformed)
        assert event.event_name == "CHANNEL_BRIDGE"
        assert event.missing == ["Caller-Caller-ID-Name", "Caller-Caller-ID-Number"]
        assert event.record == record

    def test_extra_fields_are_ignored(self):
        record = {"Event-Name": "CHANNEL_OUTGOING", **CALLER_BASE, "Unique-ID": "x"}
        assert isinstance(classify_event(record), ChannelTrying)


class TestHangup:
    def test_hangup_complete(self):
        event = classify_event({"Event-Name": "CHANNEL_HANGUP_COMPLETE", **CHANNEL_BASE})
        assert isinstance(event, ChannelHungUp)
        assert event.hangup_cause is None

    def test_hangup_cause_is_carried(self):
        record = {
            "Event-Name": "CHANNEL_HANGUP_COMPLETE",
            **CHANNEL_BASE,
            "Hangup-Cause": "NORMAL_CLEARING",
        }
        assert classify_event(record).hangup_cause == "NORMAL_CLEARING"

    def test_missing_uuid(self):
        record = {"Event-Name": "CHANNEL_HANGUP_COMPLETE", **CHANNEL_BASE}
        del record["Channel-Call-UUID"]
        event = classify_event(record)
        assert isinstance(event, Malformed)
        assert event.missing == ["Channel-Call-UUID"]


class TestHeartbeat:
    def test_heartbeat(self):
        record = {
            "Event-Name": "HEARTBEAT",
            "Event-Date-GMT": "t",
            "Up-Time": "0 years, 0 days, 1 hour",
            "Session-Count": "4",
            "Idle-CPU": "98.5",
        }
        event = classify_event(record)
        assert event == HeartbeatStat(
            timestamp="t",
            uptime="0 years, 0 days, 1 hour",
            session_count="4",
            idle_cpu="98.5",
        )

    def test_heartbeat_without_uptime_is_malformed(self):
        event = classify_event({"Event-Name": "HEARTBEAT", "Event-Date-GMT": "t"})
        assert isinstance(event, Malformed)
        assert event.missing == ["Up-Time"]


class TestGatewayState:
    def test_status_absent_is_empty(self):
        record = {
            "Event-Name": "CUSTOM",
            "Event-Subclass": "sofia::gateway_state",
            "Gateway": "g",
            "Ping-Status": "p",
            "State": "s",
        }
        event = classify_event(record)
        assert isinstance(event, GatewayStateChanged)
        assert event.gateway == "g"
        assert event.ping_status == "p"
        assert event.state == "s"
        assert event.status == ""

    def test_status_and_timestamp(self):
        record = {
            "Event-Name": "CUSTOM",
            "Event-Subclass": "sofia::gateway_state",
            "Event-Date-GMT": "t",
            "Gateway": "carrier-a",
            "Ping-Status": "UP",
            "State": "REGED",
            "Status": "200 OK",
        }
        event = classify_event(record)
        assert event.status == "200 OK"
        assert event.timestamp == "t"

    def test_missing_state_is_malformed(self):
        record = {
            "Event-Name": "CUSTOM",
            "Event-Subclass": "sofia::gateway_state",
            "Gateway": "g",
            "Ping-Status": "p",
        }
        event = classify_event(record)
        assert isinstance(event, Malformed)
        assert event.event_name == "CUSTOM"
        assert event.missing == ["State"]


class TestEventClassifier:
    def test_callable_instance(self, answer_record):
        classifier = EventClassifier()
        assert classifier(answer_record) == classify_event(answer_record)

    def test_lookup(self):
        classifier = EventClassifier()
        assert classifier.lookup({"Event-Name": "HEARTBEAT"}).event_class is HeartbeatStat
        assert classifier.lookup({"Event-Name": "NOPE"}) is None
        assert classifier.lookup({}) is None

    def test_register_rule(self):
        classifier = EventClassifier()
        classifier.register_rule(
            "CHANNEL_PROGRESS",
            ClassificationRule(ChannelTrying, classifier.event_rules["CHANNEL_OUTGOING"].required),
        )
        event = classifier({"Event-Name": "CHANNEL_PROGRESS", **CALLER_BASE})
        assert event.kind == CallEventKind.CHANNEL_TRYING
        # default table untouched
        assert isinstance(
            classify_event({"Event-Name": "CHANNEL_PROGRESS", **CALLER_BASE}), Unclassified
        )

    def test_register_subclass_rule(self):
        classifier = EventClassifier()
        classifier.register_subclass_rule(
            "CUSTOM",
            "sofia::gateway_add",
            ClassificationRule(
                GatewayStateChanged,
                {
                    "gateway": EventField.GATEWAY,
                    "ping_status": EventField.PING_STATUS,
                    "state": EventField.STATE,
                },
            ),
        )
        event = classifier(
            {
                "Event-Name": "CUSTOM",
                "Event-Subclass": "sofia::gateway_add",
                "Gateway": "g",
                "Ping-Status": "p",
                "State": "NOREG",
            }
        )
        assert isinstance(event, GatewayStateChanged)

    def test_empty_tables(self, answer_record):
        classifier = EventClassifier(event_rules={}, subclass_rules={})
        assert isinstance(classifier(answer_record), Unclassified)
