"""
tokensale test suite package.

Shared fixtures live in conftest.py: stable addresses, a controllable clock
and a funded sale factory.
"""
