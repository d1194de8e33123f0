"""Infrastructure layer — storage, record store, lookup client, note rendering.

This layer depends on stdlib, the domain layer, and third-party libs
(requests, Jinja2, ruamel.yaml). It must never import from services,
commands, or output.
"""
