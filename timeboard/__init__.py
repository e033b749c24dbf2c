"""Timeboard — team timezone dashboard backend."""
