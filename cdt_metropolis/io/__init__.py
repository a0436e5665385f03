"""Persistence contracts: Arrow schemas and output path helpers."""
