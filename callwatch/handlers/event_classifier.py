"""Classify event records into call-lifecycle events.

Classification is a two-level table lookup: ``Event-Name`` selects a rule,
except for names with a subclass table (``CUSTOM``), where ``Event-Subclass``
selects it. A rule names the variant to build, the record fields it requires
and those it may use, plus an optional guard on the record.

The outcome is always exactly one ``CallEvent``:

- no rule, or the guard rejects the record -> ``Unclassified``
- a required field is absent                -> ``Malformed``
- otherwise                                 -> the rule's variant

Nothing here performs I/O or raises on record content.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Type

from callwatch.config.constants import LOGGER_NAME
from callwatch.handlers.event_parser import EventRecord
from callwatch.models.call_events import (
    BaseCallEvent,
    CallEvent,
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
from callwatch.models.esl_api import EventField, EventName, EventSubclass

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class ClassificationRule:
    """How to build one call event variant from a record.

    Attributes:
        event_class: Variant to construct
        required: Model attribute -> record field; all must be present
        optional: Model attribute -> record field; copied when present
        guard: Predicate the record must satisfy for the rule to apply
    """

    event_class: Type[BaseCallEvent]
    required: Mapping[str, EventField]
    optional: Mapping[str, EventField] = field(default_factory=dict)
    guard: Optional[Callable[[EventRecord], bool]] = None

    def applies_to(self, record: EventRecord) -> bool:
        return self.guard is None or self.guard(record)

    def missing_fields(self, record: EventRecord):
        return [f.value for f in self.required.values() if f.value not in record]

    def build(self, record: EventRecord) -> BaseCallEvent:
        values = {attr: record[f.value] for attr, f in self.required.items()}
        for attr, f in self.optional.items():
            if f.value in record:
                values[attr] = record[f.value]
        return self.event_class(**values)


def _is_inbound(record: EventRecord) -> bool:
    return record.get(EventField.CALL_DIRECTION.value) == "inbound"


_CHANNEL_FIELDS = {
    "timestamp": EventField.EVENT_DATE_GMT,
    "call_id": EventField.CALL_UUID,
    "direction": EventField.CALL_DIRECTION,
    "channel_name": EventField.CHANNEL_NAME,
}

_CALLER_FIELDS = {
    **_CHANNEL_FIELDS,
    "caller_name": EventField.CALLER_NAME,
    "caller_number": EventField.CALLER_NUMBER,
}

DEFAULT_EVENT_RULES: Dict[str, ClassificationRule] = {
    EventName.CHANNEL_CREATE.value: ClassificationRule(
        ChannelCreated, _CHANNEL_FIELDS, guard=_is_inbound
    ),
    EventName.CHANNEL_OUTGOING.value: ClassificationRule(ChannelTrying, _CALLER_FIELDS),
    EventName.CHANNEL_ANSWER.value: ClassificationRule(ChannelAnswered, _CALLER_FIELDS),
    EventName.CHANNEL_BRIDGE.value: ClassificationRule(ChannelBridged, _CALLER_FIELDS),
    EventName.CHANNEL_HANGUP_COMPLETE.value: ClassificationRule(
        ChannelHungUp,
        _CHANNEL_FIELDS,
        optional={"hangup_cause": EventField.HANGUP_CAUSE},
    ),
    EventName.HEARTBEAT.value: ClassificationRule(
        HeartbeatStat,
        {"timestamp": EventField.EVENT_DATE_GMT, "uptime": EventField.UP_TIME},
        optional={
            "session_count": EventField.SESSION_COUNT,
            "idle_cpu": EventField.IDLE_CPU,
        },
    ),
}

DEFAULT_SUBCLASS_RULES: Dict[str, Dict[str, ClassificationRule]] = {
    EventName.CUSTOM.value: {
        EventSubclass.SOFIA_GATEWAY_STATE.value: ClassificationRule(
            GatewayStateChanged,
            {
                "gateway": EventField.GATEWAY,
                "ping_status": EventField.PING_STATUS,
                "state": EventField.STATE,
            },
            optional={
                "status": EventField.STATUS,
                "timestamp": EventField.EVENT_DATE_GMT,
            },
        ),
    },
}


class EventClassifier:
    """Table-driven classifier; instances are callable on a record.

    The default tables cover the channel lifecycle, heartbeats and sofia
    gateway state. Extra rules can be registered per event name or per
    (event name, subclass) pair.
    """

    def __init__(
        self,
        event_rules: Optional[Mapping[str, ClassificationRule]] = None,
        subclass_rules: Optional[Mapping[str, Mapping[str, ClassificationRule]]] = None,
    ):
        self.event_rules: Dict[str, ClassificationRule] = dict(
            DEFAULT_EVENT_RULES if event_rules is None else event_rules
        )
        source = DEFAULT_SUBCLASS_RULES if subclass_rules is None else subclass_rules
        self.subclass_rules: Dict[str, Dict[str, ClassificationRule]] = {
            name: dict(rules) for name, rules in source.items()
        }

    def register_rule(self, event_name: str, rule: ClassificationRule) -> None:
        self.event_rules[event_name] = rule
        logger.debug(f"Registered classification rule for {event_name}")

    def register_subclass_rule(
        self, event_name: str, subclass: str, rule: ClassificationRule
    ) -> None:
        self.subclass_rules.setdefault(event_name, {})[subclass] = rule
        logger.debug(f"Registered classification rule for {event_name}/{subclass}")

    def lookup(self, record: EventRecord) -> Optional[ClassificationRule]:
        """Find the rule for a record, or None when nothing matches."""
        event_name = record.get(EventField.EVENT_NAME.value)
        if event_name is None:
            return None
        if event_name in self.subclass_rules:
            subclass = record.get(EventField.EVENT_SUBCLASS.value)
            if subclass is None:
                return None
            return self.subclass_rules[event_name].get(subclass)
        return self.event_rules.get(event_name)

    def classify(self, record: EventRecord) -> CallEvent:
        event_name = record.get(EventField.EVENT_NAME.value)
        rule = self.lookup(record)

        if rule is None or not rule.applies_to(record):
            return Unclassified(event_name=event_name, record=dict(record))

        missing = rule.missing_fields(record)
        if missing:
            return Malformed(event_name=event_name, record=dict(record), missing=missing)

        return rule.build(record)

    __call__ = classify


_default_classifier = EventClassifier()


def classify_event(record: EventRecord) -> CallEvent:
    """Classify a record with the default tables."""
    return _default_classifier.classify(record)
