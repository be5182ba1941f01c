"""Payments bounded context: processor intents and payment records."""
