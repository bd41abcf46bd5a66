"""Surveyor command-line front end."""
