"""Persistence adapters for tickets, chat logs and the user directory."""
