"""Cluster matching, bundle option merging, manifest overlays, status summaries and image setters."""

__version__ = "0.1.0"