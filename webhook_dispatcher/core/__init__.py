"""Key derivation, dispatch rules, forwarding and metrics."""
