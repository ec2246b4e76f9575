"""Business logic layer for accounts app.

- Resolving API credentials to users
- Root administrator bootstrap and user removal
- Sign-up tokens
"""
