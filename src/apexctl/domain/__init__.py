"""Domain layer: pattern rules and the immutable dispatch catalog."""
