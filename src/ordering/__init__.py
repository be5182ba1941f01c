"""Ordering bounded context: carts, checkout and committed orders."""
