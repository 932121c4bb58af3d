"""Command line entry points for :mod:`treasury_fx`."""
