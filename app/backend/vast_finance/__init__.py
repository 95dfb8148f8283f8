"""VAST Finance target backend."""
