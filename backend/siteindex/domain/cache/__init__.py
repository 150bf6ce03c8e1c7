"""Cache domain: key construction, TTL policy and invalidation selectors."""
