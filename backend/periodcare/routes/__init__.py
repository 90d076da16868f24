"""
PeriodCare Backend - API Routes Package
=========================================

Route Inventory:
    - health.py:       GET /health, GET /favicon.ico
    - products.py:     GET /api/products
    - users.py:        /api/auth/session, /api/auth/webhook
    - features.py:     mount points for /api/period, /api/post, /api/spotify
    - composition.py:  prefixes and the auth gate per group
    - deps.py:         request-context dependencies, require_auth
"""
