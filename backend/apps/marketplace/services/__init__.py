"""Marketplace services."""
