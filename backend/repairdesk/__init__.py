"""Repair prioritization, analytics and inventory sync engine."""
