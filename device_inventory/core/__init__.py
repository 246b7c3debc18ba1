"""Core configuration, logging and wiring helpers."""
