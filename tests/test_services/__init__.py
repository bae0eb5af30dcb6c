"""
Test Services Package
"""
