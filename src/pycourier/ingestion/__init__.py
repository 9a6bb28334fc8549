"""Ingestion helpers: turn raw REST payloads into normalized models."""
