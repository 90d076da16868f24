"""
PeriodCare Backend - Services Layer
=====================================

Adapters around external providers, each injectable for tests:
    - SessionVerifier / ClerkSessionVerifier: session token → identity
    - ProductSearchService: SerpAPI Google Shopping over httpx
    - WebhookVerifier: Svix signatures over raw body bytes
"""
