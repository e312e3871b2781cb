"""
MIDI file playback as a deterministic trigger source for offline renders.
"""

from pathlib import Path
from typing import Iterable, List, Tuple, Union

import mido

from haloscope.io.triggers import TriggerEvent, event_from_message

Schedule = List[Tuple[float, TriggerEvent]]


def load_midi_schedule(path: Union[str, Path]) -> Schedule:
    """
    Read a MIDI file into (time_ms, event) pairs in playback order.

    Tempo changes are honoured; non-note messages are dropped.
    """
    midi = mido.MidiFile(str(path))
    schedule = []
    now_s = 0.0
    # Iterating a MidiFile yields messages with delta times in seconds
    for msg in midi:
        now_s += msg.time
        if msg.is_meta:
            continue
        event = event_from_message(msg)
        if event is not None:
            schedule.append((now_s * 1000.0, event))
    return schedule


class ScheduledTriggers:
    """Releases scheduled events once the simulated clock reaches them."""

    def __init__(self, schedule: Iterable[Tuple[float, TriggerEvent]]):
        self.schedule = sorted(schedule, key=lambda item: item[0])
        self._next = 0

    def due(self, now_ms: float) -> List[TriggerEvent]:
        events = []
        while self._next < len(self.schedule) and self.schedule[self._next][0] <= now_ms:
            events.append(self.schedule[self._next][1])
            self._next += 1
        return events

    @property
    def finished(self) -> bool:
        return self._next >= len(self.schedule)

    @property
    def duration_ms(self) -> float:
        return self.schedule[-1][0] if self.schedule else 0.0
