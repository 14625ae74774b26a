"""Shared helpers for date handling."""
