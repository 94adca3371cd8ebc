"""
Apps package - FastAPI services for Gist Manager.

This package contains the service applications:
- auth_service: GitHub OAuth login (PKCE), token proxy, session status and logout
"""
