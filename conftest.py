"""
Pytest bootstrap.
Switches settings to testing mode before anything imports the app, so the
module-level engine is in-memory SQLite and Celery runs tasks eagerly.
"""
import os

# Set testing environment before importing app
os.environ["TESTING"] = "True"
os.environ["DEBUG"] = "False"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("MIDTRANS_MODE", "sandbox")
os.environ.setdefault("MIDTRANS_SANDBOX_SERVER_KEY", "SB-Mid-server-test")
