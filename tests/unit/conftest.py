"""
Unit test fixtures. Fake provider only; no network, no running server.
"""
