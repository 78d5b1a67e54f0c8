"""Progression engine for 2v2 dart elimination tournaments."""
