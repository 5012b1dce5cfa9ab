"""
jks_truststore — reproducible Java KeyStore trust stores from PEM chains.

Decodes PEM certificate chains, assigns positional aliases, encodes a JKS
trust store (sealed when a password is set), and identifies the artifact
by the SHA-1 of its base64 text so repeated builds are idempotent.

Built on Railway-Oriented Programming for explicit, composable error handling.
"""

__version__ = "0.1.0"
