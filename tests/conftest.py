"""
Main conftest file that re-exports the fixtures from the modular files under
tests/fixtures.
"""

import os

from dotenv import load_dotenv

# Explicitly load the test environment variables before importing any app modules
dotenv_path = os.path.join(os.path.dirname(__file__), "..", ".env.test")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path, override=True)

from tests.fixtures.iam import FakeIam, fake_iam, iam_http_client  # noqa: E402,F401
from tests.fixtures.keys import (  # noqa: E402,F401
    key_material,
    key_store,
    signer,
    test_settings,
)
