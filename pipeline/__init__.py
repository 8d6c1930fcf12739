"""Aggregation pipeline steps."""
