"""Cross-context infrastructure: configuration, persistence, errors, logging."""
