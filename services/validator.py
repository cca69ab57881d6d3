"""Policies deciding which values of a reading may be published."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from models.records import SensorReading


class ReadingPolicyName(str, Enum):
    """Publication policies selectable per deployment."""

    channel_role = "channel_role"
    value_heuristic = "value_heuristic"


@dataclass(frozen=True)
class PublishDecision:
    environment: bool
    particulate: bool


class ReadingPolicy(Protocol):
    name: ReadingPolicyName
    include_parent: bool

    def evaluate(self, reading: SensorReading) -> PublishDecision:
        ...


class ChannelRolePolicy:
    """Environment values come from the parent channel only; flagged
    particulate readings are suppressed on every channel.
    """

    name = ReadingPolicyName.channel_role
    include_parent = True

    def evaluate(self, reading: SensorReading) -> PublishDecision:
        return PublishDecision(
            environment=reading.is_parent,
            particulate=not reading.is_flagged,
        )


class ValueHeuristicPolicy:
    """Environment values are published when temperature, humidity and
    pressure are all nonzero. An all-zero triple means the channel did not
    report them this cycle. Particulate values are always published.
    """

    name = ReadingPolicyName.value_heuristic
    include_parent = False

    def evaluate(self, reading: SensorReading) -> PublishDecision:
        reported = (
            reading.temperature_f != 0
            and reading.humidity_pct != 0
            and reading.pressure != 0
        )
        return PublishDecision(environment=reported, particulate=True)


_POLICIES: dict[ReadingPolicyName, type] = {
    ReadingPolicyName.channel_role: ChannelRolePolicy,
    ReadingPolicyName.value_heuristic: ValueHeuristicPolicy,
}


def get_policy(name: str | ReadingPolicyName) -> ReadingPolicy:
    try:
        key = ReadingPolicyName(name)
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in ReadingPolicyName)
        raise ValueError(f"Unknown reading policy {name!r}; expected one of: {choices}") from exc
    return _POLICIES[key]()
