"""Data subpackage - catalog and pricing blueprint loading."""
