"""
Contact Form Relay App

Accepts contact form submissions over HTTP and forwards them to a
transactional email provider.

Features:
- Honeypot and required-field validation
- Optional bot-score verification (reCAPTCHA v3 / Turnstile)
- Sliding-window rate limiting per client IP or email
- Single-attempt delivery via SendGrid or Django's mail backend
"""
