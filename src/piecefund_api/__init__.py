"""HTTP transport for the piece funding billing service."""
