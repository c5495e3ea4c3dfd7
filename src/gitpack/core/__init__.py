"""Core package management logic for gitpack."""
