"""Shared helpers: calendar windows, clocks, cancellation and logging."""
