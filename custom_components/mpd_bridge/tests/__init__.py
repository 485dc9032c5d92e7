"""Tests for the MPD Bridge integration."""
