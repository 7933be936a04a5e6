"""
Tests for the Deep RL Arena
===========================

Run all tests:
    pytest tests/

Skip the longer arena runs:
    pytest tests/ -m "not slow"
"""
