"""Integration test package.

These tests run whole batches and CLI commands against fake search and
mail backends; no network access is needed.
"""
