"""
Authentication for the study-assistant API.

Design goals:
- Google sign-in via the OAuth 2.0 authorization-code flow.
- Stateless: CSRF state lives in a short-lived cookie and/or a signed URL parameter.
- Cookie-based session (HttpOnly, signed, 7 days) verified on every protected read.
"""
