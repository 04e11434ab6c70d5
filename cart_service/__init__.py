"""Per-user shopping cart service with catalog-priced totals."""
