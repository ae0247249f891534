"""Command line interface for dbmapper."""
