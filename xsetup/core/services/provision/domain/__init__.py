"""
L1 Domain — pure functions. No I/O, no subprocess.
"""
