"""Analysis engine: tiers, access gate, common signal, similarity, aggregation, validation, orchestration."""
