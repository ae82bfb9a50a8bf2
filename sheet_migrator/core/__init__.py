"""Core engine, store clients and configuration for sheet migration."""
