"""Orchestrator backends and the capabilities they implement."""
