"""Databases, caches, outbound clients, realtime and logging."""
