"""Heuristic extraction and reconciliation of delivery-order slip spreadsheets."""

__version__ = "0.3.0"
