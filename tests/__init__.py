"""
Test suite for the contact form relay.

Test Organization:
- unit/ - validation, admission, bot verification, delivery and pipeline tests
- integration/ - concurrent admission tests
- Endpoint tests remain in the app directory (contact/tests.py)
"""
