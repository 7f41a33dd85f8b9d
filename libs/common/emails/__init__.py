"""
Email package.

Modules:
- client: EmailClient for sending templated emails via the Communications Service API

Templates live in the Communications Service. Other services send through
EmailClient and never render templates themselves.
"""
