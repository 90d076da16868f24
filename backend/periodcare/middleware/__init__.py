"""
PeriodCare Backend - Middleware Package
=========================================

Request flow (outermost first):
    RequestID → RequestLogging → GZip → SecurityHeaders → CORS
    → BodyCapture → Session → ErrorBoundary → route groups (auth gate per group)

Why this order:
    1. Request ID first so every later log line and every response carries it
    2. Security headers and CORS wrap everything that can answer, including
       body-capture rejections (400/413) and the error boundary's 500
    3. Body capture before the session/gate so webhook routes get raw bytes
    4. Session identity next, immediately before the gate reads it
    5. Error boundary innermost, around the router and its exception handlers
"""
