"""Storefront accounts: user records, credentials and tokens."""
