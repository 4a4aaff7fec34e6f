"""
L0 Data — static tables. No logic.
"""
