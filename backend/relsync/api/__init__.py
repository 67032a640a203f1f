"""HTTP surface of relsync."""
