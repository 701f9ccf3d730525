"""Canonical model, migration objects and the migration pipeline."""
