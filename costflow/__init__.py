"""CostFlow construction-cost estimator."""
