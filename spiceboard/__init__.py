"""Spice price list backend: auction archive ingestion and audited price edits."""
