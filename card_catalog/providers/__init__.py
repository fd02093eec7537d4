"""Catalog provider implementations, registered in card_catalog.adapters."""
