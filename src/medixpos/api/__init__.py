"""HTTP boundary for the feature licensing service (requires the ``api`` extra)."""
