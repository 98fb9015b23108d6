# Talos Test Suite
"""
Test suite including:
- Unit tests (matrices, automata, key schedule, block cipher)
- File container tests
- CLI tests
- Invalid input tests

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
