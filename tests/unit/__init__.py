"""Unit tests: each component in isolation"""
