"""Trigger input, MIDI playback and frame export."""
