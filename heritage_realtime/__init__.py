"""Realtime notification fan-out for the heritage museum platform."""
