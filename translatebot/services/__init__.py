"""External service adapters: OAuth endpoint, credentials, translation."""
