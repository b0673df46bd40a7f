"""
Unit Tests
==========

Fast, isolated tests that verify individual functions and classes work correctly.
These tests should:
- Run in < 1 second each
- Not depend on external files or network
- Test one thing at a time
"""
