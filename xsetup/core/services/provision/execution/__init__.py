"""
L4 Execution — everything that touches the host.
"""
