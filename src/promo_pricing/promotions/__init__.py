"""Promotions subpackage - promotion authoring format and compilation."""
