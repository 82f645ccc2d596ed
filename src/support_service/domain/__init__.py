"""Domain enums, errors, events and the Result type."""
