"""Adapters turning parsed authoring documents into target markup."""
