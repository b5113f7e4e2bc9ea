"""Test utilities for tini applications.

    from tini.testing import TestClient
"""

from tini.testing.client import TestClient

__all__ = ["TestClient"]
