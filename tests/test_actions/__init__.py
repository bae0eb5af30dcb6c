"""
Test Actions Package
Tests for reminder planning and delivery
"""
