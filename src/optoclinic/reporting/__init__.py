"""Report aggregation and export."""
