"""Tests for development scripts"""
