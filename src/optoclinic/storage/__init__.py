"""Document store and collection adapters."""
