"""
Integration Tests
=================

Tests that verify components work together correctly through the
VectorSpaceModel facade and its async wrapper.

Run with: python -m pytest tests/integration/ -v
"""
