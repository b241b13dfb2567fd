"""
Shared utilities for the costing apps.
"""
