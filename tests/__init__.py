"""
DoseKeeper Test Suite
=====================

Test Structure:
- test_tools/: Schedule expansion, classification and aggregation
- test_actions/: Reminder planning and the reminder scheduler
- test_services/: Services against an in-memory database
- test_api/: API endpoint tests for FastAPI routes
- conftest.py: Shared pytest fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_tools/

    # Run only marked tests
    pytest -m "unit"
    pytest -m "api"
"""

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_USER_EMAIL = "test.user@example.com"

# Common test data
SAMPLE_MEDICATIONS = [
    {"name": "Metformin", "dosage": "500mg", "frequency_type": "Twice daily"},
    {"name": "Lisinopril", "dosage": "10mg", "frequency_type": "Once daily"},
    {"name": "Atorvastatin", "dosage": "20mg", "frequency_type": "Once daily"},
]

__all__ = [
    "TEST_DATABASE_URL",
    "TEST_USER_EMAIL",
    "SAMPLE_MEDICATIONS",
]
