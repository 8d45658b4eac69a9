"""Nomad orchestrator backend."""
