"""Tracked-package Registry, its change log, and the scheduled detector."""
