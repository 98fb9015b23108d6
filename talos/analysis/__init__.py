# Analysis Module
"""
Research tooling for the key schedule:
- Cycle scan: detect when seeded automata revisit earlier states
"""
