"""Shared types and helpers for the lifecycle modules."""
