"""Signer key loading for administrative commands."""
