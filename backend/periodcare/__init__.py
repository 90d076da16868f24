"""
PeriodCare Backend - Application Package
==========================================

HTTP backend for the PeriodCare frontend: session-authenticated feature
routes, a product search proxy, and the startup sequence that wires them.

    ┌──────────────────────────────────────┐
    │   bootstrap (env → app → db → listen)│
    ├──────────────────────────────────────┤
    │   main (middleware chain, handlers)  │
    ├──────────────────────────────────────┤
    │   routes (groups, auth gate)         │
    ├──────────────────────────────────────┤
    │   services (Clerk, SerpAPI, Svix)    │
    └──────────────────────────────────────┘
"""

__version__ = "1.0.0"
