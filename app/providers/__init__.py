"""Outbound delivery channels."""
