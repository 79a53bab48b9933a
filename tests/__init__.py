"""Tests for tado-async."""
