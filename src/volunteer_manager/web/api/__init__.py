"""
Built-in API endpoints of the volunteer-manager server.

Provides:
- GET /api/health - Liveness (health.py)
- GET /api/auth/identity - Signed in user (identity.py)
"""
