"""Cutover planning."""
