"""Test fixtures for launchkit tests."""
