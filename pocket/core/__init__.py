"""Intent classification and interaction phase logic for Pocket."""
