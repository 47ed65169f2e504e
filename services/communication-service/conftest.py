"""
Pytest configuration for communication-service tests
"""

import os

os.environ["API_KEY"] = "test-api-key"
