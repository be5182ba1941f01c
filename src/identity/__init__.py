"""Identity bounded context: authenticated principals and buyer address books."""
