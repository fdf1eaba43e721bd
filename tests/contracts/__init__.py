"""Tests for contracts package (result types, errors, descriptors)."""
