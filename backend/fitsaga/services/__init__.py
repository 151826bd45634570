# backend/fitsaga/services/__init__.py
"""Business logic services. Services own transactions; repositories only flush."""
