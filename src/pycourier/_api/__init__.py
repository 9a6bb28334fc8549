"""Endpoint modules for the dispatch REST API."""
