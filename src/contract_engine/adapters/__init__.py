"""Boundary adapters: host request parameters in, schema documents out."""
