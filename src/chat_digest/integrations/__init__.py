"""Messaging gateway integrations."""
