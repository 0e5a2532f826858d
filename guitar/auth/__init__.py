"""
Authentication for the tuner API.

Design goals:
- Exactly one identity provider (Google OAuth2, authorization-code flow).
- Stateless sessions: short-lived bearer access tokens plus a long-lived
  HttpOnly refresh cookie, both HS256 JWTs signed with one shared secret.
- No server-side session or revocation table.
"""
