"""Packaged resources: markdown descriptions of the rules under ``rules/``."""
