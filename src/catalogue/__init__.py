"""Catalogue bounded context: the product rows checkout reads."""
