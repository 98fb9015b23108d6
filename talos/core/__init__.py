# Core Cipher Module
"""
Core Talos implementations including:
- Toroidal binary matrices (packed-bit and bool backends)
- 2D cellular automata on a torus
- Key schedule (template seeding)
- The 256-bit block cipher
"""
