"""connect-social backend package."""
