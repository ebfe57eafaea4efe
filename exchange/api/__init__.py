"""HTTP API over an exchange deployment."""
