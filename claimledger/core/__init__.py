"""Configuration, signing keys, security and wiring."""
