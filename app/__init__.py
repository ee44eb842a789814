"""HTTP surface for the ticket generation service."""
