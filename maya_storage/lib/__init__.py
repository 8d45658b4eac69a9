"""Shared helpers: configuration, datacenter defaults, validators."""
