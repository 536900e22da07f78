"""dns-sync: write-through DNS zone/record cache over pluggable providers."""

__version__ = '0.1.0'
