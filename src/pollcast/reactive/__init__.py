"""Reactive layer — timers, activity gating, polling and fan-out.

Connects connection events to polling through the activity signal, the
shared interval timers and the per-source poll cycle.
"""

from pollcast.reactive.activity import ConnectionActivityTracker
from pollcast.reactive.heartbeat import HeartbeatMonitor
from pollcast.reactive.intervals import IntervalManager, SharedTimer, TickStream
from pollcast.reactive.poller import PollManager, SourceRegistry, SourceState
from pollcast.reactive.signals import Channel, Subscription, ValueSignal

__all__ = [
    "Channel",
    "ConnectionActivityTracker",
    "HeartbeatMonitor",
    "IntervalManager",
    "PollManager",
    "SharedTimer",
    "SourceRegistry",
    "SourceState",
    "Subscription",
    "TickStream",
    "ValueSignal",
]
