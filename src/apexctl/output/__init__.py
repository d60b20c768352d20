"""Output layer: renders engine results for humans or machines."""
