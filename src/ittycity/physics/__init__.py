"""Movement and collision core (Y-up, -Z forward)."""
