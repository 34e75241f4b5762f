"""Kernel services: the write side (periods, chart, journal)."""
