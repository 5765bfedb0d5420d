"""HTTP surface: the inbound trigger endpoint."""
