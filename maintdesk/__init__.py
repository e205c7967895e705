"""Maintenance ticket desk."""
