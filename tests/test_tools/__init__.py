"""
Test Tools Package
Tests for the tools module (expander, classifier, aggregator)
"""
