"""
ReliefWatch - REST API
"""
