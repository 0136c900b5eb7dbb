"""Plumbing shared by the bulk exporter and the fan-out service."""
