"""Tests for trigger events and MIDI input translation."""

import threading

import mido

from haloscope.io.triggers import (
    MidiTriggerSource,
    TriggerEvent,
    TriggerInbox,
    event_from_message,
)


class TestEventFromMessage:
    def test_note_on(self):
        event = event_from_message(mido.Message("note_on", note=60, velocity=100, channel=2))
        assert event == TriggerEvent("on", 60, 100, 2)

    def test_note_on_zero_velocity_is_off(self):
        event = event_from_message(mido.Message("note_on", note=60, velocity=0))
        assert event.kind == "off"
        assert event.id == 60

    def test_note_off(self):
        event = event_from_message(mido.Message("note_off", note=61, velocity=40))
        assert event == TriggerEvent("off", 61, 40, 0)

    def test_other_messages_ignored(self):
        assert event_from_message(mido.Message("control_change", control=1, value=64)) is None
        assert event_from_message(mido.Message("clock")) is None


class TestTriggerInbox:
    def test_drain_in_arrival_order(self):
        inbox = TriggerInbox()
        events = [TriggerEvent("on", n) for n in (60, 64, 67)]
        for e in events:
            inbox.push(e)
        assert len(inbox) == 3
        assert inbox.drain() == events
        assert inbox.drain() == []

    def test_push_from_other_threads(self):
        inbox = TriggerInbox()

        def producer(base):
            for n in range(100):
                inbox.push(TriggerEvent("on", base + n))

        threads = [threading.Thread(target=producer, args=(i * 100,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = sorted(e.id for e in inbox.drain())
        assert ids == list(range(400))


class TestMidiTriggerSource:
    def test_callback_queues_notes_only(self):
        inbox = TriggerInbox()
        source = MidiTriggerSource("test", inbox)
        source._on_message(mido.Message("note_on", note=60, velocity=90))
        source._on_message(mido.Message("pitchwheel", pitch=100))
        source._on_message(mido.Message("note_off", note=60))
        assert [e.kind for e in inbox.drain()] == ["on", "off"]

    def test_close_without_open(self):
        source = MidiTriggerSource("test", TriggerInbox())
        source.close()
        assert source.port is None
