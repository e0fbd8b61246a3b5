"""Webhook service for chat-digest."""
