"""Command implementations for the tsera CLI."""
