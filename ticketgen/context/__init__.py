"""Context aggregation: design data in, confidence-scored ContextBundle out."""
