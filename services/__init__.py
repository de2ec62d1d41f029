"""Availability & reservation engine."""
