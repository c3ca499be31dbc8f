"""Fixed-point arithmetic, snapshots, valuation and return metrics."""
