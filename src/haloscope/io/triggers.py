"""
Trigger events and the MIDI input that produces them.

MIDI callbacks run on the backend's own thread, so events are only
queued there; the render loop drains the queue between frames and is the
only place the scene is mutated.
"""

import queue
from dataclasses import dataclass
from typing import List, Optional

import mido

ON = "on"
OFF = "off"


@dataclass(frozen=True)
class TriggerEvent:
    """A trigger-on or trigger-off for an external id (e.g. a note number)."""

    kind: str  # "on", "off"
    id: int
    velocity: int = 0
    channel: int = 0


def event_from_message(msg: mido.Message) -> Optional[TriggerEvent]:
    """Translate a note message; anything else maps to None."""
    if msg.type == "note_on":
        # Running-status note-offs arrive as note_on with velocity 0
        kind = ON if msg.velocity > 0 else OFF
        return TriggerEvent(kind, msg.note, msg.velocity, msg.channel)
    if msg.type == "note_off":
        return TriggerEvent(OFF, msg.note, msg.velocity, msg.channel)
    return None


class TriggerInbox:
    """Thread-safe FIFO of trigger events, drained by the render loop."""

    def __init__(self):
        self._queue: "queue.Queue[TriggerEvent]" = queue.Queue()

    def push(self, event: TriggerEvent):
        self._queue.put(event)

    def drain(self) -> List[TriggerEvent]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def __len__(self) -> int:
        return self._queue.qsize()


class MidiTriggerSource:
    """
    Feeds note messages from a MIDI input port into a TriggerInbox.

    With `virtual=True` a new port named `port_name` is created for other
    programs to play into; otherwise an existing input is opened.
    """

    def __init__(self, port_name: str, inbox: TriggerInbox, virtual: bool = True):
        self.port_name = port_name
        self.inbox = inbox
        self.virtual = virtual
        self.port = None

    def _on_message(self, msg: mido.Message):
        event = event_from_message(msg)
        if event is not None:
            self.inbox.push(event)

    def open(self) -> "MidiTriggerSource":
        self.port = mido.open_input(
            self.port_name, virtual=self.virtual, callback=self._on_message
        )
        return self

    def close(self):
        if self.port is not None:
            self.port.close()
            self.port = None

    def __enter__(self) -> "MidiTriggerSource":
        return self.open()

    def __exit__(self, *exc):
        self.close()


def available_inputs() -> List[str]:
    return mido.get_input_names()
