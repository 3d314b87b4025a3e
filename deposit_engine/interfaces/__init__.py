"""Outer interfaces of the engine."""
