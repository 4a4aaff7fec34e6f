"""
L3 Detection — read-only host probes.
"""
